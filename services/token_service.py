import secrets
import hashlib
from datetime import datetime, timezone, timedelta
from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from jose import jwt, JWTError
from models.refresh_tokens import RefreshToken
from models.users import User
from core.config import settings
from utils.logger import get_logger

logger = get_logger(__name__)


def _hash_jti(jti: str) -> str:
    return hashlib.sha256(jti.encode()).hexdigest()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TokenService:
    """
    Handles all token operations: creation, validation, rotation, and revocation.
    """

    @staticmethod
    def create_access_token(email: str, user_id: int, role: str, expires_delta: timedelta = None):
        """
        Creates a JWT access token.

        Args:
            email: User's email
            user_id: User's ID
            role: User's role (customer, restaurant, rider, admin)
            expires_delta: Token lifetime (default: ACCESS_TOKEN_EXPIRE_MINUTES)

        Returns:
            JWT access token string
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

        expire = datetime.now(timezone.utc) + expires_delta

        payload = {
            "sub": email,
            "id": user_id,
            "role": role,
            "type": "access",
            "exp": expire
        }

        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_access_token(token: str) -> dict:
        """
        Validates an access token and returns the principal it identifies.

        Returns:
            {"email": ..., "user_id": ..., "user_role": ...}

        Raises:
            HTTPException 401 for a bad signature, expiry, missing claims
            or a refresh token used in place of an access token.
        """
        try:
            payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        email: str = payload.get("sub")
        user_id: int = payload.get("id")
        user_role: str = payload.get("role")

        if email is None or user_id is None or user_role is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Could not validate credentials.")

        if payload.get("type") != "access":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED,
                                detail="Invalid token type. Access token required.")

        return {"email": email, "user_id": user_id, "user_role": user_role}

    @staticmethod
    def create_refresh_token(email: str, user_id: int, role: str):
        """
        Creates a JWT refresh token.

        Returns:
            Tuple of (refresh_token_string, jti, expires_at)
        """
        jti = secrets.token_urlsafe(32)

        expire = datetime.now(timezone.utc) + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)

        payload = {
            "sub": email,
            "id": user_id,
            "role": role,
            "jti": jti,
            "type": "refresh",
            "exp": expire
        }

        refresh_token = jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

        return refresh_token, jti, expire

    @staticmethod
    def create_tokens(email: str, user_id: int, role: str, db: Session):
        """
        Creates an access + refresh token pair and stores the refresh
        token's hashed JTI.
        """
        access_token = TokenService.create_access_token(email, user_id, role)
        refresh_token, jti, expires_at = TokenService.create_refresh_token(email, user_id, role)

        db_refresh_token = RefreshToken(
            user_id=user_id,
            token_hash=_hash_jti(jti),
            expires_at=expires_at
        )
        db.add(db_refresh_token)
        db.commit()

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }

    @staticmethod
    def refresh_access_token(refresh_token: str, db: Session):
        """
        Validates a refresh token and issues a new token pair.
        The old refresh token is revoked (rotation).

        Raises:
            HTTPException: If token is invalid, expired, or revoked, or the
            account was deactivated or lost its approval meanwhile
        """
        try:
            payload = jwt.decode(
                refresh_token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token"
            )

        if payload.get("type") != "refresh":
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token type"
            )

        email = payload.get("sub")
        user_id = payload.get("id")
        role = payload.get("role")
        jti = payload.get("jti")

        if not all([email, user_id, role, jti]):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token payload"
            )

        db_token = db.query(RefreshToken).filter(
            RefreshToken.token_hash == _hash_jti(jti),
            RefreshToken.revoked == False
        ).first()

        if not db_token:
            logger.warning("Refresh attempt with unknown or revoked token", extra={"user_id": user_id})
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token not found or revoked"
            )

        if _as_utc(db_token.expires_at) < datetime.now(timezone.utc):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token expired"
            )

        user = db.query(User).filter(User.id == user_id).one_or_none()
        if user is None or not user.is_active:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is inactive")

        if not user.is_approved:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is not approved")

        db_token.revoked = True
        db.commit()

        return TokenService.create_tokens(email, user_id, role, db)

    @staticmethod
    def revoke_token(refresh_token: str, db: Session):
        """
        Revokes a refresh token (logout). Unknown or malformed tokens are
        ignored so that logout stays idempotent.
        """
        try:
            payload = jwt.decode(
                refresh_token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM]
            )
        except JWTError:
            logger.debug("Logout with an undecodable refresh token")
            return

        jti = payload.get("jti")
        if not jti:
            return

        db_token = db.query(RefreshToken).filter(
            RefreshToken.token_hash == _hash_jti(jti)
        ).first()

        if db_token:
            db_token.revoked = True
            db.commit()

    @staticmethod
    def revoke_all_user_tokens(user_id: int, db: Session):
        """
        Revokes all refresh tokens for a user (logout from all devices).
        """
        db.query(RefreshToken).filter(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked == False
        ).update({"revoked": True})
        db.commit()
