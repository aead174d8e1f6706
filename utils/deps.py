from typing import Annotated
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from starlette.requests import HTTPConnection
from core.broker import Broker
from core.exceptions import AuthorizationError
from services.token_service import TokenService


def get_db(connection: HTTPConnection):
    db = connection.app.state.database.session()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


def get_broker(connection: HTTPConnection) -> Broker:
    return connection.app.state.broker

broker_dependency = Annotated[Broker, Depends(get_broker)]


def get_current_user(token: Annotated[str, Depends(OAuth2PasswordBearer(tokenUrl="auth/token"))]):
    return TokenService.decode_access_token(token)

user_dependency = Annotated[dict, Depends(get_current_user)]


def require_role(*roles: str):
    """
    Dependency factory: the current user must have one of ``roles``.

        @router.get("/dashboard")
        async def dashboard(admin: Annotated[dict, Depends(require_role("admin"))]): ...
    """
    def checker(user: user_dependency) -> dict:
        if user.get("user_role") not in roles:
            raise AuthorizationError(f"Access denied. {' or '.join(roles).capitalize()} only.")
        return user

    return checker


admin_dependency = Annotated[dict, Depends(require_role("admin"))]
