from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from pydantic import ValidationError

from libs.auth.models import AdminPrincipal
from libs.auth.tokens import decode_admin_token

ADMIN_SESSION_KEY = "admin"

security = HTTPBearer(auto_error=False)


def get_session_admin(request: Request) -> Optional[AdminPrincipal]:
    """Return the admin stored in the cookie session, if any."""
    data = request.session.get(ADMIN_SESSION_KEY)
    if not data:
        return None
    try:
        return AdminPrincipal(**data)
    except ValidationError:
        request.session.pop(ADMIN_SESSION_KEY, None)
        return None


async def get_current_admin(
    request: Request,
    token: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> AdminPrincipal:
    """
    Resolve the signed-in admin from the session cookie or a bearer token.
    """
    admin = get_session_admin(request)
    if admin:
        return admin

    if token:
        try:
            payload = decode_admin_token(token.credentials)
            if payload.get("scope") == "admin":
                return AdminPrincipal(**payload)
        except (JWTError, ValidationError):
            pass

    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Authentication required",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def require_admin(
    current_admin: Annotated[AdminPrincipal, Depends(get_current_admin)]
) -> AdminPrincipal:
    """Any active back office role."""
    return current_admin


def require_roles(*roles: str) -> Callable:
    """Dependency factory restricting an endpoint to the given roles."""

    async def _check(
        current_admin: Annotated[AdminPrincipal, Depends(get_current_admin)]
    ) -> AdminPrincipal:
        if current_admin.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_admin

    return _check
