from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param
from jose import jwt, JWTError
from core.config import settings


def get_user_id(request: Request) -> str:
    """
    Rate-limit key.

    Authenticated callers are limited per account (``user:<id>``), so a rider
    streaming positions from a shared NAT does not starve its neighbours.
    Everyone else is limited per client address.
    """
    scheme, token = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() == "bearer" and token:
        try:
            claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            claims = {}
        if claims.get("type") == "access" and claims.get("id"):
            return f"user:{claims['id']}"

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)
