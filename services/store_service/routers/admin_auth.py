"""Admin authentication router: login with lockout, logout, current admin."""

import uuid

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import ADMIN_SESSION_KEY, require_admin
from libs.auth.models import AdminPrincipal
from libs.auth.passwords import verify_password
from libs.auth.tokens import create_admin_token
from libs.common.error_handler import StoreError
from libs.common.logging import get_logger
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.store_service.models import StoreAdmin
from services.store_service.routers._helpers import ok
from services.store_service.schemas import AdminLoginRequest, AdminResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["admin-auth"])
logger = get_logger(__name__)


def principal_for(admin: StoreAdmin) -> AdminPrincipal:
    return AdminPrincipal(
        admin_id=str(admin.id), email=admin.email, name=admin.name, role=admin.role.value
    )


@router.post("/login")
@auth_limit
async def login(
    request: Request,
    payload: AdminLoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Sign in to the back office.

    Five wrong passwords in a row lock the account for two hours.
    """
    email = (payload.email or "").strip().lower()
    if not email or not payload.password:
        raise StoreError("Email and password are required", status_code=400)

    result = await db.execute(select(StoreAdmin).where(StoreAdmin.email == email))
    admin = result.scalar_one_or_none()
    if admin is None:
        logger.warning("Admin login for unknown email")
        raise StoreError("Invalid credentials", status_code=401)

    if admin.is_locked():
        logger.warning("Admin login attempt on locked account %s", admin.id)
        raise StoreError(
            "Account is locked due to too many failed login attempts. Try again later.",
            status_code=423,
        )
    if not admin.is_active:
        raise StoreError("Account is deactivated", status_code=403)

    if not verify_password(payload.password, admin.password_hash):
        admin.register_failed_login()
        await db.commit()
        logger.warning(
            "Failed admin login",
            extra={"extra_fields": {"admin_id": str(admin.id), "attempts": admin.login_attempts}},
        )
        raise StoreError("Invalid credentials", status_code=401)

    admin.register_successful_login()
    await db.commit()

    principal = principal_for(admin)
    request.session[ADMIN_SESSION_KEY] = principal.session_payload()
    logger.info("Admin %s signed in", admin.id)

    return ok(
        {
            "admin": AdminResponse.model_validate(admin).model_dump(mode="json"),
            "access_token": create_admin_token(principal),
            "token_type": "bearer",
        },
        message="Login successful",
    )


@router.post("/logout")
async def logout(request: Request):
    request.session.pop(ADMIN_SESSION_KEY, None)
    return ok(message="Logged out")


@router.get("/me")
async def me(
    current_admin: AdminPrincipal = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    try:
        admin_id = uuid.UUID(current_admin.admin_id)
    except ValueError as e:
        raise StoreError("Authentication required", status_code=401) from e
    admin = await db.get(StoreAdmin, admin_id)
    if admin is None or not admin.is_active:
        raise StoreError("Authentication required", status_code=401)
    return ok(AdminResponse.model_validate(admin).model_dump(mode="json"))
