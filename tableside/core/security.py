"""
Password hashing, access tokens and role checks.

Passwords are hashed with bcrypt; access tokens are HS256 JWTs carrying
the user id, email, name and role.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from tableside.core.config import get_settings
from tableside.models import UserRole

logger = logging.getLogger(__name__)

ROLE_HIERARCHY = {
    UserRole.CUSTOMER: 1,
    UserRole.STAFF: 2,
    UserRole.ADMIN: 3,
}


def hash_password(password: str) -> str:
    """Hash a password using bcrypt"""
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash"""
    try:
        return bcrypt.checkpw(plain_password.encode(), hashed_password.encode())
    except ValueError:
        logger.warning("Stored password hash is malformed")
        return False


def create_access_token(user) -> tuple[str, int]:
    """
    Sign an access token for ``user``.

    Returns:
        (token, lifetime in seconds)
    """
    settings = get_settings()
    lifetime = timedelta(minutes=settings.jwt_expiry_minutes)
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "name": user.name,
        "role": user.role.value,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, int(lifetime.total_seconds())


def decode_access_token(token: str) -> Optional[dict]:
    """Decode and verify a JWT; None when invalid or expired."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.debug("Access token expired")
        return None
    except jwt.PyJWTError as e:
        logger.debug(f"Access token rejected: {e}")
        return None


def has_role(role: UserRole, required: UserRole) -> bool:
    """True if ``role`` is ``required`` or ranks above it."""
    return ROLE_HIERARCHY[role] >= ROLE_HIERARCHY[required]


def generate_reset_token() -> str:
    return secrets.token_hex(32)
