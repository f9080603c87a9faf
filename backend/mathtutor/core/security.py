"""Security utilities: password hashing and signed access tokens."""

from datetime import datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from mathtutor.core.config import settings
from mathtutor.core.logging import get_logger

logger = get_logger(__name__)

# Password hasher instance
_password_hasher = PasswordHasher()


def hash_password(plain_password: str) -> str:
    """Hash a plain password using Argon2."""
    return _password_hasher.hash(plain_password)


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    """Verify a plain password against a hash. Accounts without a hash never match."""
    if not password_hash:
        return False
    try:
        _password_hasher.verify(password_hash, plain_password)
        return True
    except VerifyMismatchError:
        return False
    except (InvalidHashError, VerificationError) as e:
        logger.warning(f"Password verification error: {e}")
        return False


def create_access_token(account_id: int | str, role: str) -> str:
    """Create a signed JWT access token for an account of the given role."""
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    payload = {
        "sub": str(account_id),
        "role": role,
        "iat": now,
        "exp": expire,
        "jti": str(uuid4()),
        "type": "access",
    }

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def verify_access_token(token: str) -> dict[str, Any]:
    """Verify signature and expiry, then return the token claims."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"require": ["sub", "role", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {e}")

    if payload.get("type") != "access":
        raise jwt.InvalidTokenError("Token is not an access token")
    return payload
