"""
Printful API client for catalog sync, shipping quotes and order fulfillment.

Provides async methods for:
- Reading the connected store
- Listing sync products and their variants
- Quoting shipping rates
- Creating (and confirming) orders
- Fetching order status and shipments
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)

settings = get_settings()

PRINTFUL_BASE_URL = "https://api.printful.com"
PRINTFUL_V2_BASE_URL = "https://api.printful.com/v2"
SYNC_PAGE_SIZE = 100

CATEGORY_MAP = {
    "T-SHIRT": "tshirts",
    "SHIRT": "tshirts",
    "HOODIE": "hoodies",
    "SWEATSHIRT": "sweatshirts",
    "HAT": "accessories",
    "MUG": "accessories",
    "POSTER": "accessories",
    "STICKER": "accessories",
}

SIZE_MAP = {
    "EXTRA SMALL": "XS",
    "SMALL": "S",
    "MEDIUM": "M",
    "LARGE": "L",
    "EXTRA LARGE": "XL",
    "2X-LARGE": "2XL",
    "3X-LARGE": "3XL",
}


def map_category(product_type: Optional[str]) -> str:
    """Map a Printful product type word (e.g. 'Hoodie') to a store category."""
    return CATEGORY_MAP.get((product_type or "").upper(), "other")


def normalize_size(size: Optional[str]) -> str:
    """Map Printful's long size names to the store's short ones."""
    if not size:
        return "One Size"
    return SIZE_MAP.get(size.upper(), size)


def to_price(value: Any) -> Decimal:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal("0.00")


@dataclass
class ShippingRate:
    """A Printful shipping option."""

    id: str
    name: str
    rate: Decimal
    currency: str = "USD"


@dataclass
class PrintfulOrderResult:
    """Result of submitting an order to Printful."""

    id: int
    status: str
    raw: dict = field(default_factory=dict)


@dataclass
class Recipient:
    name: str
    address1: str
    city: str
    state_code: Optional[str]
    country_code: str
    zip: str
    address2: str = ""
    email: Optional[str] = None
    phone: str = ""

    def to_payload(self) -> dict:
        return {
            "name": self.name,
            "address1": self.address1,
            "address2": self.address2 or "",
            "city": self.city,
            "state_code": self.state_code,
            "country_code": self.country_code or "US",
            "zip": self.zip,
            "email": self.email,
            "phone": self.phone or "",
        }


class PrintfulError(Exception):
    """Base exception for Printful API errors."""

    def __init__(
        self, message: str, status_code: int = None, response_data: dict = None
    ):
        self.message = message
        self.status_code = status_code
        self.response_data = response_data or {}
        super().__init__(message)


class PrintfulClient:
    """Async client for the Printful store, catalog, shipping and order APIs."""

    def __init__(self, api_token: str = None, store_id: str = None):
        self.api_token = api_token or settings.PRINTFUL_API_TOKEN
        if not self.api_token:
            raise PrintfulError("Printful API token not configured", status_code=400)
        self.store_id = store_id if store_id is not None else settings.PRINTFUL_STORE_ID
        self._headers = {
            "Authorization": f"Bearer {self.api_token}",
            "Content-Type": "application/json",
        }
        if self.store_id:
            self._headers["X-PF-Store-Id"] = str(self.store_id)

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: dict = None,
        json_data: dict = None,
        base_url: str = PRINTFUL_BASE_URL,
    ) -> dict:
        """Make an async request to the Printful API and return the decoded body."""
        url = f"{base_url}{endpoint}"

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    headers=self._headers,
                    params=params,
                    json=json_data,
                )
        except httpx.HTTPError as e:
            logger.error("Printful request to %s failed: %s", endpoint, e)
            raise PrintfulError(f"Could not reach Printful: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            error = data.get("error") or {}
            message = (
                error.get("message")
                if isinstance(error, dict)
                else None
            ) or data.get("result") or "Unknown Printful error"
            logger.error(
                f"Printful API error: {response.status_code} - {message}",
                extra={"extra_fields": {"endpoint": endpoint, "response": data}},
            )
            raise PrintfulError(
                message=str(message),
                status_code=response.status_code,
                response_data=data,
            )

        return data

    # =========================================================================
    # Store
    # =========================================================================

    async def get_stores(self) -> List[dict]:
        """List the stores this token can access (v2 API, ``data`` envelope)."""
        data = await self._request("GET", "/stores", base_url=PRINTFUL_V2_BASE_URL)
        return data.get("data") or []

    # =========================================================================
    # Sync products
    # =========================================================================

    async def get_sync_products(self) -> List[dict]:
        """
        Fetch every sync product in the store, following pagination.

        Returns:
            List of sync product summaries (id, external_id, name, thumbnail_url, ...)
        """
        products: List[dict] = []
        offset = 0
        while True:
            data = await self._request(
                "GET",
                "/sync/products",
                params={"offset": offset, "limit": SYNC_PAGE_SIZE},
            )
            products.extend(data.get("result") or [])
            total = (data.get("paging") or {}).get("total", 0)
            offset += SYNC_PAGE_SIZE
            if offset >= total:
                break

        logger.info("Retrieved %d Printful sync products", len(products))
        return products

    async def get_sync_product(self, sync_product_id: int) -> dict:
        """
        Fetch one sync product with its variants.

        Returns:
            {"sync_product": {...}, "sync_variants": [...]}
        """
        data = await self._request("GET", f"/sync/products/{sync_product_id}")
        return data.get("result") or {}

    # =========================================================================
    # Shipping
    # =========================================================================

    async def get_shipping_rates(
        self, recipient: dict, items: List[dict]
    ) -> List[ShippingRate]:
        """
        Quote shipping for a set of items.

        Args:
            recipient: address1, city, state_code, country_code, zip
            items: [{"quantity", "variant_id" | "sync_variant_id"}]
        """
        data = await self._request(
            "POST",
            "/shipping/rates",
            json_data={"recipient": recipient, "items": items},
        )
        return [
            ShippingRate(
                id=str(rate.get("id", "")),
                name=rate.get("name", ""),
                rate=to_price(rate.get("rate")),
                currency=rate.get("currency", "USD"),
            )
            for rate in data.get("result") or []
        ]

    async def get_standard_shipping_rate(
        self, recipient: dict, items: List[dict]
    ) -> Optional[Decimal]:
        """STANDARD rate if offered, else any 'standard' named rate, else the first."""
        rates = await self.get_shipping_rates(recipient, items)
        if not rates:
            return None
        standard = (
            next((r for r in rates if r.id == "STANDARD"), None)
            or next((r for r in rates if "standard" in r.name.lower()), None)
            or rates[0]
        )
        return standard.rate

    # =========================================================================
    # Orders
    # =========================================================================

    async def create_order(
        self,
        external_id: str,
        recipient: Recipient,
        items: List[dict],
        retail_costs: Optional[dict] = None,
        confirm: bool = True,
    ) -> PrintfulOrderResult:
        """
        Create a Printful order shipped with the STANDARD method.

        Args:
            external_id: Our order number
            recipient: Shipping recipient
            items: [{"quantity", "sync_variant_id"}] or
                   [{"quantity", "variant_id", "files"}]
            retail_costs: {"subtotal": "12.00", "shipping": "4.99"} as shown to the customer
            confirm: Submit for fulfillment immediately instead of leaving a draft
        """
        body: dict[str, Any] = {
            "external_id": external_id,
            "shipping": "STANDARD",
            "recipient": recipient.to_payload(),
            "items": items,
        }
        if retail_costs:
            body["retail_costs"] = retail_costs

        data = await self._request(
            "POST",
            "/orders",
            params={"confirm": "true" if confirm else "false"},
            json_data=body,
        )
        result = data.get("result") or {}
        return PrintfulOrderResult(
            id=int(result.get("id")), status=result.get("status", "draft"), raw=result
        )

    async def get_order(self, printful_order_id: int) -> dict:
        """Fetch an order including its status and shipments."""
        data = await self._request("GET", f"/orders/{printful_order_id}")
        return data.get("result") or {}


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """HMAC-SHA256 of the raw body, hex encoded, compared in constant time."""
    if not signature:
        return False
    expected = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


def get_printful_client() -> PrintfulClient:
    """Get a PrintfulClient instance."""
    return PrintfulClient()
