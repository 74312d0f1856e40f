"""Server-rendered storefront pages."""

import json
from html import escape

from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from libs.common.config import get_settings
from libs.common.currency import format_usd
from libs.db.session import get_async_db
from services.store_service.models import Order, Product
from services.store_service.routers._helpers import (
    cart_payload,
    get_session_id,
    order_client_payload,
    product_payload,
)
from services.store_service.routers.catalog import SORT_OPTIONS, purchasable_products
from services.store_service.services import cart_service
from services.store_service.templates.base import (
    button_link,
    detail_box,
    price_html,
    product_grid,
    wrap_page,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

settings = get_settings()

router = APIRouter(tags=["pages"], include_in_schema=False)

PAGE_VIEW_SCRIPT = """<script>
fetch("/api/analytics/pageview", {method: "POST", headers: {"Content-Type": "application/json"},
  body: JSON.stringify({page: location.pathname, referrer: document.referrer || null})});
</script>"""


def _not_found(what: str) -> HTMLResponse:
    return HTMLResponse(
        wrap_page(f"{what} not found", f"<p>{button_link('Back to the shop', '/shop')}</p>"),
        status_code=404,
    )


@router.get("/", response_class=HTMLResponse)
async def home_page(db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(
        purchasable_products()
        .where(Product.is_featured.is_(True))
        .order_by(Product.created_at.desc())
        .limit(8)
    )
    featured = [product_payload(p) for p in result.scalars().all()]
    body = (
        "<h2>Featured</h2>"
        + product_grid(featured, "New designs are on the way.")
        + f"<p>{button_link('Shop all', '/shop')}</p>"
    )
    return wrap_page(
        settings.STORE_NAME, body, subtitle="Wear your roots.", scripts=PAGE_VIEW_SCRIPT
    )


@router.get("/shop", response_class=HTMLResponse)
async def shop_page(sort: str = "featured", db: AsyncSession = Depends(get_async_db)):
    order_by = SORT_OPTIONS.get(sort, SORT_OPTIONS["featured"])
    result = await db.execute(purchasable_products().order_by(*order_by))
    products = [product_payload(p) for p in result.scalars().all()]
    return wrap_page(
        "Shop",
        product_grid(products),
        subtitle=f"{len(products)} products",
        scripts=PAGE_VIEW_SCRIPT,
    )


@router.get("/product/{slug}", response_class=HTMLResponse)
async def product_page(slug: str, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(purchasable_products().where(Product.slug == slug))
    product = result.scalar_one_or_none()
    if product is None:
        return _not_found("Product")

    data = product_payload(product)
    image = data.get("primary_image_url") or ""
    sizes = "".join(
        f'<option value="{escape(v["size"])}">{escape(v["size"])}'
        f'{" / " + escape(v["color"]) if v.get("color") else ""}</option>'
        for v in data["variants"]
        if v["stock"] > 0
    )
    body = (
        f'<img src="{escape(image)}" alt="{escape(product.name)}" style="max-width: 420px; width: 100%;" />'
        f"<p>{price_html(product.price, product.compare_at_price)}</p>"
        f"<p>{escape(product.description or '')}</p>"
        f'<form id="add-to-cart"><label for="size">Size</label>'
        f'<select id="size" name="size">{sizes}</select> '
        f'<button class="button" type="submit">Add to cart</button></form>'
    )
    script = f"""<script>
fetch("/api/analytics/product-view", {{method: "POST", headers: {{"Content-Type": "application/json"}},
  body: JSON.stringify({{product_id: "{product.id}", product_name: {_js_string(product.name)},
    product_category: "{product.category.value}", product_price: {float(product.price)}}})}});
document.getElementById("add-to-cart").addEventListener("submit", async (e) => {{
  e.preventDefault();
  await fetch("/api/cart/items", {{method: "POST", headers: {{"Content-Type": "application/json"}},
    body: JSON.stringify({{product_id: "{product.id}", size: document.getElementById("size").value, quantity: 1}})}});
  location.href = "/cart";
}});
</script>"""
    return wrap_page(product.name, body, subtitle=product.category.value.title(), scripts=script)


@router.get("/cart", response_class=HTMLResponse)
async def cart_page(
    db: AsyncSession = Depends(get_async_db),
    session_id: str = Depends(get_session_id),
):
    cart = await cart_service.load_cart(db, session_id)
    removed = await cart_service.prune_unpurchasable(db, cart) if cart else []
    data = cart_payload(cart, removed)

    if not data["items"]:
        body = f"<p>Your cart is empty.</p><p>{button_link('Start shopping', '/shop')}</p>"
    else:
        rows = "".join(
            f"<tr><td>{escape(item['product_name'])}</td><td>{escape(item['size'])}</td>"
            f"<td>{item['quantity']}</td><td>{format_usd(item['line_total'])}</td></tr>"
            for item in data["items"]
        )
        body = (
            "<table><tr><th>Product</th><th>Size</th><th>Qty</th><th>Total</th></tr>"
            f"{rows}</table>"
            f"<p>Subtotal: <strong>{format_usd(data['subtotal'])}</strong></p>"
        )
    if removed:
        body = (
            f"<p>Some items are no longer available and were removed: "
            f"{escape(', '.join(removed))}</p>" + body
        )
    return wrap_page("Your cart", body, scripts=PAGE_VIEW_SCRIPT)


@router.get("/order/{order_number}", response_class=HTMLResponse)
async def order_confirmation_page(order_number: str, db: AsyncSession = Depends(get_async_db)):
    result = await db.execute(select(Order).where(Order.order_number == order_number))
    order = result.scalar_one_or_none()
    if order is None:
        return _not_found("Order")

    data = order_client_payload(order)
    tracking = data.get("tracking") or {}
    items = "".join(
        f"<li>{escape(i['product_name'])} ({escape(i['size'])}) x {i['quantity']}</li>"
        for i in data["items"]
    )
    body = (
        f"<p>Thanks, {escape(data['customer_first_name'])}! Your order is confirmed.</p>"
        + detail_box(
            {
                "Order number": data["order_number"],
                "Status": data["status_label"],
                "Subtotal": format_usd(data["subtotal"]),
                "Shipping": format_usd(data["shipping_cost"]),
                "Discount": format_usd(data["discount_amount"]) if data["discount_amount"] else None,
                "Donation": format_usd(data["donation_amount"]) if data["donation_amount"] else None,
                "Total": format_usd(data["total"]),
                "Tracking": tracking.get("number"),
            }
        )
        + f"<ul>{items}</ul>"
    )
    if tracking.get("url"):
        body += f"<p>{button_link('Track your package', tracking['url'])}</p>"
    return wrap_page("Order confirmed", body)


@router.get("/admin/login", response_class=HTMLResponse)
async def admin_login_page():
    body = """<form id="login">
<label for="email">Email</label><input id="email" name="email" type="email" required />
<label for="password">Password</label><input id="password" name="password" type="password" required />
<p><button class="button" type="submit">Sign in</button></p>
<p id="error" style="color: #c41e3a;"></p>
</form>"""
    script = """<script>
document.getElementById("login").addEventListener("submit", async (e) => {
  e.preventDefault();
  const res = await fetch("/api/admin/login", {method: "POST", headers: {"Content-Type": "application/json"},
    body: JSON.stringify({email: e.target.email.value, password: e.target.password.value})});
  const body = await res.json();
  if (body.success) { location.href = "/"; } else { document.getElementById("error").textContent = body.message; }
});
</script>"""
    return wrap_page("Admin sign in", body, scripts=script)


def _js_string(value: str) -> str:
    return json.dumps(value).replace("</", "<\\/")
