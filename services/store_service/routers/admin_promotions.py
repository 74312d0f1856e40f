"""Admin promotions router."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AdminPrincipal
from libs.common.currency import as_float
from libs.common.datetime_utils import ensure_utc
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.models import Product, Promotion
from services.store_service.routers._helpers import ok
from services.store_service.schemas import (
    PromotionCreate,
    PromotionResponse,
    PromotionUpdate,
)
from services.store_service.services.promotions import count_codes, normalize_code
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-store"])
logger = get_logger(__name__)


def promotion_payload(promotion: Promotion) -> dict:
    data = PromotionResponse.model_validate(promotion).model_dump(mode="json")
    data["is_currently_valid"] = promotion.is_valid()
    return data


async def _get_promotion(db: AsyncSession, promotion_id: uuid.UUID) -> Promotion:
    promotion = await db.get(Promotion, promotion_id)
    if promotion is None:
        raise StoreError("Promotion not found", status_code=404)
    return promotion


async def _ensure_unique_code(db: AsyncSession, code, exclude_id=None) -> None:
    if code and await count_codes(db, code, exclude_id=exclude_id):
        raise StoreError("A promotion with this code already exists", status_code=400)


def _check_window(valid_from, valid_until) -> None:
    if ensure_utc(valid_until) <= ensure_utc(valid_from):
        raise StoreError("End date must be after start date", status_code=400)


@router.get("/promotions")
async def list_promotions(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(Promotion).order_by(Promotion.priority.desc(), Promotion.created_at.desc())
    )
    return ok([promotion_payload(p) for p in result.scalars().all()])


@router.get("/promotions/products")
async def promotion_product_picker(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Products to choose from when scoping a promotion."""
    result = await db.execute(
        select(Product.id, Product.name, Product.category, Product.price).order_by(Product.name)
    )
    return ok(
        [
            {
                "id": str(row.id),
                "name": row.name,
                "category": row.category.value,
                "price": as_float(row.price),
            }
            for row in result.all()
        ]
    )


@router.get("/promotions/{promotion_id}")
async def get_promotion(
    promotion_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    return ok(promotion_payload(await _get_promotion(db, promotion_id)))


@router.post("/promotions", status_code=201)
async def create_promotion(
    payload: PromotionCreate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    data = payload.model_dump()
    data["code"] = normalize_code(data.get("code"))
    await _ensure_unique_code(db, data["code"])
    _check_window(data["valid_from"], data["valid_until"])

    promotion = Promotion(**data)
    db.add(promotion)
    await db.commit()
    logger.info(
        "Created promotion %s",
        promotion.code or promotion.name,
        extra={"extra_fields": {"admin_id": current_admin.admin_id}},
    )
    return ok(promotion_payload(promotion), message="Promotion created")


@router.patch("/promotions/{promotion_id}")
async def update_promotion(
    promotion_id: uuid.UUID,
    payload: PromotionUpdate,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    promotion = await _get_promotion(db, promotion_id)
    updates = payload.model_dump(exclude_unset=True)

    if "code" in updates:
        updates["code"] = normalize_code(updates["code"])
        await _ensure_unique_code(db, updates["code"], exclude_id=promotion.id)

    nullable = {"code", "banner_text", "max_discount_amount", "usage_limit_total"}
    for field, value in updates.items():
        if value is None and field not in nullable:
            continue
        setattr(promotion, field, value)

    _check_window(promotion.valid_from, promotion.valid_until)
    await db.commit()
    return ok(promotion_payload(promotion), message="Promotion updated")


@router.post("/promotions/{promotion_id}/toggle")
async def toggle_promotion(
    promotion_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    promotion = await _get_promotion(db, promotion_id)
    promotion.is_active = not promotion.is_active
    await db.commit()
    return ok({"is_active": promotion.is_active})


@router.delete("/promotions/{promotion_id}")
async def delete_promotion(
    promotion_id: uuid.UUID,
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    promotion = await _get_promotion(db, promotion_id)
    await db.delete(promotion)
    await db.commit()
    logger.info("Deleted promotion %s", promotion_id)
    return ok(message="Promotion deleted")
