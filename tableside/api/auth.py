"""
Authentication Endpoints

    POST /api/auth/register             - Create a customer account
    POST /api/auth/login                - Exchange credentials for a token
    GET  /api/auth/me                   - Current user
    POST /api/auth/forgot-password      - Issue a reset token
    GET  /api/auth/verify-reset-token   - Check a reset token
    POST /api/auth/reset-password       - Set a new password with a token
"""

import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_current_user
from tableside.core.config import get_settings
from tableside.core.rate_limit import AUTH_LIMIT, limiter
from tableside.core.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from tableside.database import get_db
from tableside.models import User, UserRole, utcnow
from tableside.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserPreferences,
    UserResponse,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["Auth"])

RESET_REQUESTED_MESSAGE = "If your email exists in our system, you will receive a password reset link"


def _token_response(user: User) -> TokenResponse:
    token, expires_in = create_access_token(user)
    return TokenResponse(
        access_token=token,
        expires_in=expires_in,
        user=UserResponse.model_validate(user),
    )


async def _find_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def _find_by_reset_token(db: AsyncSession, token: str):
    result = await db.execute(select(User).where(User.reset_token == token))
    user = result.scalar_one_or_none()
    if user is None or user.reset_token_expiry is None or user.reset_token_expiry < utcnow():
        return None
    return user


@router.post("/register", status_code=status.HTTP_201_CREATED)
@limiter.limit(AUTH_LIMIT)
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Public sign-up. Always creates a customer account."""
    email = payload.email.lower()
    if await _find_by_email(db, email):
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = User(
        email=email,
        name=payload.name,
        password_hash=hash_password(payload.password),
        role=UserRole.CUSTOMER,
        phone=payload.phone,
        preferences=UserPreferences().model_dump(),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info(f"👤 Registered user #{user.id} ({email})")
    return {
        "success": True,
        "message": "Account created successfully",
        "data": _token_response(user).model_dump(mode="json"),
    }


@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    user = await _find_by_email(db, payload.email)
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info(f"Failed login for {payload.email.strip().lower()}")
        raise HTTPException(status_code=401, detail="Invalid email or password")

    user.last_login = utcnow()
    await db.commit()
    await db.refresh(user)

    return {"success": True, "data": _token_response(user).model_dump(mode="json")}


@router.get("/me")
async def me(user: User = Depends(get_current_user)) -> dict[str, Any]:
    return {"success": True, "data": UserResponse.model_validate(user).model_dump(mode="json")}


@router.post("/forgot-password")
@limiter.limit(AUTH_LIMIT)
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Same answer whether or not the email exists."""
    user = await _find_by_email(db, payload.email)
    if user is not None and user.is_active:
        user.reset_token = generate_reset_token()
        user.reset_token_expiry = utcnow() + timedelta(minutes=settings.reset_token_ttl_minutes)
        await db.commit()

        reset_link = f"{settings.app_base_url.rstrip('/')}/reset-password?token={user.reset_token}"
        if settings.is_development:
            logger.info(f"🔑 Password reset link for {user.email}: {reset_link}")
        else:
            logger.info(f"🔑 Password reset requested for user #{user.id}")

    return {"success": True, "message": RESET_REQUESTED_MESSAGE}


@router.get("/verify-reset-token")
async def verify_reset_token(
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    user = await _find_by_reset_token(db, token)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    return {"success": True, "data": {"valid": True, "email": user.email}}


@router.post("/reset-password")
@limiter.limit(AUTH_LIMIT)
async def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    user = await _find_by_reset_token(db, payload.token)
    if user is None:
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")

    user.password_hash = hash_password(payload.password)
    user.reset_token = None
    user.reset_token_expiry = None
    await db.commit()

    logger.info(f"🔑 Password reset for user #{user.id}")
    return {"success": True, "message": "Password has been reset successfully"}
