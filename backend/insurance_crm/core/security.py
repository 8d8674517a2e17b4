"""Password hashing (bcrypt) and JWT access tokens (python-jose)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import bcrypt
from jose import JWTError, jwt

from insurance_crm.core.config import settings


def hash_password(password: str) -> str:
    """Hash a plain-text password with the configured bcrypt cost."""
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a plain-text password against a stored bcrypt hash."""
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed or empty stored hash
        return False


def create_access_token(
    data: dict[str, Any],
    expires_minutes: int | None = None,
) -> str:
    """Issue a signed JWT carrying `data` plus exp/iat/iss claims."""
    now = datetime.now(timezone.utc)
    minutes = expires_minutes if expires_minutes is not None else settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES
    to_encode = dict(data)
    to_encode.update(
        {
            "iat": now,
            "exp": now + timedelta(minutes=minutes),
            "iss": settings.JWT_ISSUER,
        }
    )
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Decode and verify a JWT. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM],
            issuer=settings.JWT_ISSUER,
        )
    except JWTError:
        return None
