"""Shipping cost: a live Printful quote when available, region rules otherwise."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional

from libs.common.currency import to_decimal
from libs.common.logging import get_logger
from services.store_service.printful_client import PrintfulClient, PrintfulError

logger = get_logger(__name__)

SHIPPING_METHOD = "Standard"

EU_COUNTRIES = ("DE", "FR", "IT", "ES", "NL", "BE", "AT", "PT", "IE", "PL")
EFTA_COUNTRIES = ("CH", "NO", "IS", "LI")


@dataclass(frozen=True)
class RegionRule:
    cost: Decimal
    free_threshold: Decimal


REGION_RULES: dict[str, RegionRule] = {
    "US": RegionRule(Decimal("8.49"), Decimal("75")),
    "CA": RegionRule(Decimal("10.19"), Decimal("100")),
    "GB": RegionRule(Decimal("6.99"), Decimal("100")),
    "UK": RegionRule(Decimal("6.99"), Decimal("100")),
    **{code: RegionRule(Decimal("6.99"), Decimal("100")) for code in EU_COUNTRIES},
    **{code: RegionRule(Decimal("10.99"), Decimal("100")) for code in EFTA_COUNTRIES},
    "AU": RegionRule(Decimal("11.29"), Decimal("100")),
    "NZ": RegionRule(Decimal("11.29"), Decimal("100")),
    "JP": RegionRule(Decimal("6.99"), Decimal("100")),
    "BR": RegionRule(Decimal("5.99"), Decimal("100")),
}


@dataclass
class ShippingQuote:
    cost: Decimal
    method: str
    source: str  # "printful", "region" or "promotion"

    @property
    def is_free(self) -> bool:
        return self.cost == 0


def region_rule(country: Optional[str]) -> RegionRule:
    """Rule for a country code; unknown countries ship on US terms."""
    return REGION_RULES.get((country or "US").upper(), REGION_RULES["US"])


def region_shipping(subtotal: Decimal, country: Optional[str]) -> Decimal:
    rule = region_rule(country)
    if to_decimal(subtotal) >= rule.free_threshold:
        return Decimal("0.00")
    return rule.cost


def printful_recipient(address: dict) -> dict:
    return {
        "address1": address.get("line1"),
        "city": address.get("city"),
        "state_code": address.get("state"),
        "zip": address.get("postal_code"),
        "country_code": (address.get("country") or "US").upper(),
    }


async def quote_shipping(
    subtotal: Decimal,
    address: dict,
    items: Iterable[dict],
    printful: Optional[PrintfulClient] = None,
    free_shipping: bool = False,
) -> ShippingQuote:
    """Shipping for an order.

    Orders over the region's free threshold and orders carrying a
    free-shipping promotion ship free. Otherwise a live STANDARD quote is
    used when Printful is connected, falling back to the region table when
    the quote fails or comes back empty.
    """
    if free_shipping:
        return ShippingQuote(Decimal("0.00"), SHIPPING_METHOD, "promotion")

    country = address.get("country")
    if to_decimal(subtotal) >= region_rule(country).free_threshold:
        return ShippingQuote(Decimal("0.00"), SHIPPING_METHOD, "region")

    items = [i for i in items if i.get("sync_variant_id") or i.get("variant_id")]
    if printful is not None and items:
        try:
            rate = await printful.get_standard_shipping_rate(printful_recipient(address), items)
        except PrintfulError as e:
            logger.warning("Printful shipping quote failed, using region rates: %s", e.message)
            rate = None
        if rate:
            return ShippingQuote(to_decimal(rate), SHIPPING_METHOD, "printful")

    return ShippingQuote(region_shipping(subtotal, country), SHIPPING_METHOD, "region")
