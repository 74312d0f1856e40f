"""Store-wide settings backed by the ``store_settings`` key/value table."""

from typing import Any, Iterable, Optional

from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from services.store_service.models import StoreSetting
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SETTING_KEYS = (
    "donation_per_purchase",
    "shipping_flat_rate",
    "tax_rate",
    "store_announcement",
    "store_email",
    "store_phone",
    "free_shipping_threshold",
    "maintenance_mode",
    "printful_auto_sync",
    "printful_last_sync",
)

# key -> (value, description)
DEFAULT_SETTINGS: dict[str, tuple[Any, str]] = {
    "donation_per_purchase": (5.0, "Donation amount per purchase"),
    "shipping_flat_rate": (5.99, "Flat rate shipping cost"),
    "free_shipping_threshold": (75.0, "Order amount for free shipping"),
    "tax_rate": (0, "Tax rate percentage"),
    "store_email": ("support@48roots.com", "Store contact email"),
    "printful_auto_sync": (False, "Auto-sync products from Printful"),
}

# Safe to expose to the storefront
PUBLIC_SETTING_KEYS = (
    "donation_per_purchase",
    "free_shipping_threshold",
    "store_announcement",
    "store_email",
    "store_phone",
    "maintenance_mode",
)


def default_for(key: str) -> Any:
    default = DEFAULT_SETTINGS.get(key)
    return default[0] if default else None


async def get_setting(db: AsyncSession, key: str, default: Any = None) -> Any:
    """Stored value for ``key``, else the caller's default, else the built-in default."""
    result = await db.execute(select(StoreSetting).where(StoreSetting.key == key))
    setting = result.scalar_one_or_none()
    if setting is not None and setting.value is not None:
        return setting.value
    return default if default is not None else default_for(key)


async def set_setting(
    db: AsyncSession, key: str, value: Any, description: Optional[str] = None
) -> StoreSetting:
    """Upsert a setting. The caller commits."""
    if key not in SETTING_KEYS:
        raise ValueError(f"Unknown setting: {key}")
    setting = await db.get(StoreSetting, key)
    if setting is None:
        setting = StoreSetting(key=key, value=value, description=description)
        db.add(setting)
    else:
        setting.value = value
        if description is not None:
            setting.description = description
        setting.updated_at = utc_now()
    await db.flush()
    return setting


async def get_settings_map(
    db: AsyncSession, keys: Optional[Iterable[str]] = None
) -> dict[str, Any]:
    """Values for ``keys`` (all known keys by default), built-in defaults filled in."""
    keys = list(keys or SETTING_KEYS)
    result = await db.execute(select(StoreSetting).where(StoreSetting.key.in_(keys)))
    stored = {s.key: s.value for s in result.scalars().all()}
    return {
        key: stored[key] if stored.get(key) is not None else default_for(key)
        for key in keys
    }


async def initialize_defaults(db: AsyncSession) -> int:
    """Insert missing default settings without touching existing ones."""
    result = await db.execute(
        select(StoreSetting.key).where(StoreSetting.key.in_(DEFAULT_SETTINGS.keys()))
    )
    existing = set(result.scalars().all())
    created = 0
    for key, (value, description) in DEFAULT_SETTINGS.items():
        if key in existing:
            continue
        db.add(StoreSetting(key=key, value=value, description=description))
        created += 1
    if created:
        await db.commit()
        logger.info("Initialized %d default store settings", created)
    return created
