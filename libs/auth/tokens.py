from datetime import timedelta

from jose import jwt

from libs.auth.models import AdminPrincipal
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

settings = get_settings()


def create_admin_token(principal: AdminPrincipal) -> str:
    """Issue a signed bearer token for API clients of the back office."""
    now = utc_now()
    payload = {
        **principal.session_payload(),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(days=settings.ADMIN_TOKEN_TTL_DAYS)).timestamp()),
        "scope": "admin",
    }
    return jwt.encode(
        payload, settings.ADMIN_JWT_SECRET, algorithm=settings.ADMIN_JWT_ALGORITHM
    )


def decode_admin_token(token: str) -> dict:
    """Decode and verify a bearer token. Raises jose.JWTError when invalid."""
    return jwt.decode(
        token, settings.ADMIN_JWT_SECRET, algorithms=[settings.ADMIN_JWT_ALGORITHM]
    )
