import enum
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import bcrypt
import jwt
from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import Settings
from .context import AppContext, get_context, get_db
from .errors import AppError
from .models.user import User

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10

security = HTTPBearer(auto_error=False)


class TokenErrorKind(str, enum.Enum):
    EXPIRED = "expired"
    INVALID = "invalid"
    FAILED = "failed"


class TokenError(Exception):
    """Raised when a bearer token cannot be verified."""

    def __init__(self, kind: TokenErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode(
        "utf-8"
    )


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # over-long passwords and corrupt hashes never match
        return False


def create_access_token(user: User, settings: Settings) -> str:
    """Sign a token carrying the user's identity claims."""
    if not settings.jwt_secret:
        raise RuntimeError("JWT secret is not configured")
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiration_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> Dict[str, Any]:
    """Verify ``token`` and return its claims.

    Raises :class:`TokenError` with kind ``EXPIRED`` for a token past its
    expiry, ``INVALID`` for a bad signature or malformed token and ``FAILED``
    for anything else.
    """
    if not settings.jwt_secret:
        raise TokenError(TokenErrorKind.FAILED, "JWT secret is not configured")
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError(TokenErrorKind.EXPIRED, "Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError(TokenErrorKind.INVALID, "Invalid token") from exc
    except Exception as exc:
        logger.exception("unexpected failure verifying token")
        raise TokenError(TokenErrorKind.FAILED, "Failed to verify token") from exc

    if not isinstance(payload.get("id"), int):
        raise TokenError(TokenErrorKind.INVALID, "Token carries no user id")
    return payload


_TOKEN_ERRORS = {
    TokenErrorKind.EXPIRED: ("TOKEN_EXPIRED", "Platnost přístupového tokenu vypršela"),
    TokenErrorKind.INVALID: ("INVALID_TOKEN", "Neplatný přístupový token"),
    TokenErrorKind.FAILED: ("AUTH_ERROR", "Chyba při ověřování tokenu"),
}


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    ctx: AppContext = Depends(get_context),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or not credentials.credentials:
        raise AppError(
            status.HTTP_401_UNAUTHORIZED, "NO_TOKEN", "Přístupový token nebyl poskytnut"
        )
    try:
        payload = decode_token(credentials.credentials, ctx.settings)
    except TokenError as exc:
        code, message = _TOKEN_ERRORS[exc.kind]
        raise AppError(status.HTTP_401_UNAUTHORIZED, code, message) from exc

    user = db.get(User, payload["id"])
    if user is None:
        code, message = _TOKEN_ERRORS[TokenErrorKind.INVALID]
        raise AppError(status.HTTP_401_UNAUTHORIZED, code, message)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Return the user for valid credentials, ``None`` otherwise."""
    user = db.query(User).filter(User.username == username).first()
    if user is None or not verify_password(password, user.password_hash):
        logger.info("failed login attempt for username=%s", username)
        return None
    return user
