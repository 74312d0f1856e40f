"""
Shared storefront page layout for 48 Roots.

Every server-rendered page uses `wrap_page()` so the header, navigation and
footer stay consistent. Small helpers render the repeated UI pieces
(product cards, price lines, detail boxes, buttons).

Usage:
    from services.store_service.templates.base import wrap_page, product_card

    html = wrap_page(
        title="Shop",
        body_html="".join(product_card(p) for p in products),
    )
"""

from html import escape
from typing import Optional

from libs.common.config import get_settings
from libs.common.currency import format_usd

# ─── Color presets ────────────────────────────────────────────────────
BRAND_RED = "#c41e3a"
BRAND_DARK = "#1e1e1e"
MUTED = "#64748b"


def wrap_page(
    title: str,
    body_html: str,
    subtitle: str = "",
    scripts: str = "",
) -> str:
    """Wrap inner content in the storefront layout.

    Args:
        title: Page heading and document title.
        body_html: Main content (already-formatted HTML).
        subtitle: Smaller text under the heading.
        scripts: Inline script tags appended before </body>.
    """
    store_name = escape(get_settings().STORE_NAME)
    subtitle_html = f'<p class="subtitle">{escape(subtitle)}</p>' if subtitle else ""

    return f"""\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1.0" />
    <title>{escape(title)} | {store_name}</title>
    <style>
        body {{
            margin: 0;
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif;
            line-height: 1.6;
            color: #334155;
            background-color: #f8fafc;
        }}
        a {{ color: {BRAND_RED}; text-decoration: none; }}

        /* Header */
        .site-header {{
            background: {BRAND_DARK};
            padding: 16px 32px;
            display: flex;
            justify-content: space-between;
            align-items: center;
        }}
        .site-header .brand {{ color: #ffffff; font-weight: 700; font-size: 20px; }}
        .site-header nav a {{ color: #e2e8f0; margin-left: 20px; font-size: 15px; }}

        /* Content */
        main {{ max-width: 1100px; margin: 0 auto; padding: 32px 16px; }}
        h1 {{ margin: 0 0 8px; color: #1e293b; font-size: 28px; }}
        .subtitle {{ margin: 0 0 24px; color: {MUTED}; }}

        /* Product grid */
        .grid {{
            display: grid;
            grid-template-columns: repeat(auto-fill, minmax(220px, 1fr));
            gap: 24px;
        }}
        .card {{
            background: #ffffff;
            border-radius: 12px;
            overflow: hidden;
            box-shadow: 0 1px 3px rgba(0,0,0,0.08);
        }}
        .card img {{ width: 100%; aspect-ratio: 1; object-fit: cover; background: #e2e8f0; }}
        .card .card-body {{ padding: 12px 16px; }}
        .card h3 {{ margin: 0 0 4px; font-size: 16px; color: #1e293b; }}
        .price {{ font-weight: 600; color: #1e293b; }}
        .compare {{ text-decoration: line-through; color: #94a3b8; margin-left: 6px; }}

        /* Detail box */
        .detail-box {{
            background: #ffffff;
            border-left: 4px solid {BRAND_RED};
            border-radius: 0 8px 8px 0;
            padding: 20px 24px;
            margin: 20px 0;
        }}
        .detail-row {{ margin: 8px 0; font-size: 14px; }}
        .detail-label {{ color: {MUTED}; }}
        .detail-value {{ font-weight: 600; color: #1e293b; }}

        /* Buttons and forms */
        .button {{
            display: inline-block;
            padding: 12px 28px;
            border-radius: 8px;
            border: none;
            background: {BRAND_RED};
            color: #ffffff !important;
            font-size: 15px;
            font-weight: 600;
            cursor: pointer;
        }}
        form label {{ display: block; margin: 12px 0 4px; font-size: 14px; color: {MUTED}; }}
        form input {{ width: 100%; max-width: 360px; padding: 10px; border: 1px solid #cbd5e1; border-radius: 6px; }}
        table {{ width: 100%; border-collapse: collapse; background: #ffffff; }}
        th, td {{ text-align: left; padding: 10px 12px; border-bottom: 1px solid #e2e8f0; }}

        /* Footer */
        .site-footer {{ text-align: center; padding: 24px; color: #94a3b8; font-size: 13px; }}

        @media only screen and (max-width: 640px) {{
            .site-header {{ padding: 12px 16px; }}
            main {{ padding: 20px 12px; }}
            h1 {{ font-size: 22px; }}
        }}
    </style>
</head>
<body>
    <header class="site-header">
        <a class="brand" href="/">{store_name}</a>
        <nav>
            <a href="/shop">Shop</a>
            <a href="/cart">Cart</a>
        </nav>
    </header>
    <main>
        <h1>{escape(title)}</h1>
        {subtitle_html}
        {body_html}
    </main>
    <footer class="site-footer">
        <p>&copy; {store_name}. Every purchase includes a donation to the community.</p>
    </footer>
    {scripts}
</body>
</html>"""


# ─── Helper functions ─────────────────────────────────────────────────


def price_html(price, compare_at_price=None) -> str:
    """Price line with the struck-through compare-at price when higher."""
    html = f'<span class="price">{format_usd(price)}</span>'
    if compare_at_price is not None and compare_at_price > price:
        html += f'<span class="compare">{format_usd(compare_at_price)}</span>'
    return html


def product_card(product: dict) -> str:
    """Render a product grid card from a product payload."""
    image = product.get("primary_image_url") or ""
    return (
        f'<a class="card" href="/product/{escape(product["slug"])}">'
        f'<img src="{escape(image)}" alt="{escape(product["name"])}" loading="lazy" />'
        f'<div class="card-body"><h3>{escape(product["name"])}</h3>'
        f'{price_html(product["price"], product.get("compare_at_price"))}</div></a>'
    )


def product_grid(products: list[dict], empty_message: str = "No products yet.") -> str:
    if not products:
        return f"<p>{escape(empty_message)}</p>"
    return '<div class="grid">' + "".join(product_card(p) for p in products) + "</div>"


def detail_box(items: dict[str, Optional[str]]) -> str:
    """Render a key-value detail box, skipping empty values."""
    rows = "\n".join(
        f'<div class="detail-row"><span class="detail-label">{escape(label)}:</span> '
        f'<span class="detail-value">{escape(str(value))}</span></div>'
        for label, value in items.items()
        if value
    )
    return f'<div class="detail-box">{rows}</div>'


def button_link(label: str, url: str) -> str:
    return f'<a class="button" href="{escape(url)}">{escape(label)}</a>'
