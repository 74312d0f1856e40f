"""Public store settings for the storefront."""

from fastapi import APIRouter, Depends
from libs.db.session import get_async_db
from services.store_service.routers._helpers import ok
from services.store_service.services.store_settings import (
    PUBLIC_SETTING_KEYS,
    get_settings_map,
)
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])


@router.get("/settings")
async def public_settings(db: AsyncSession = Depends(get_async_db)):
    return ok(await get_settings_map(db, PUBLIC_SETTING_KEYS))
