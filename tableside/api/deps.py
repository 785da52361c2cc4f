"""
Shared route dependencies: authentication, role checks and pagination.
"""

import logging
import math
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.core.security import decode_access_token, has_role
from tableside.database import get_db
from tableside.models import User, UserRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """The caller's user when a valid token is sent, else None."""
    if credentials is None:
        return None

    claims = decode_access_token(credentials.credentials)
    if not claims or not str(claims.get("sub", "")).isdigit():
        return None

    user = await db.get(User, int(claims["sub"]))
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_role(required: UserRole):
    """Dependency factory: the caller must hold ``required`` or a higher role."""

    async def checker(user: User = Depends(get_current_user)) -> User:
        if not has_role(user.role, required):
            logger.warning(f"User #{user.id} ({user.role.value}) denied {required.value} route")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return checker


require_staff = require_role(UserRole.STAFF)
require_admin = require_role(UserRole.ADMIN)


def pagination_meta(page: int, limit: int, total: int) -> dict:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_prev": page > 1,
    }


def request_origin(request: Request) -> str:
    """Storefront origin for checkout redirects: Origin header, else configured URL."""
    return request.headers.get("origin") or get_settings().app_base_url
