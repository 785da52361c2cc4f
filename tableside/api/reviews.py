"""
Review Endpoints

    POST /api/reviews                 - Leave a review
    GET  /api/reviews                 - List reviews
    GET  /api/reviews/summary         - Average and distribution (verified only)
    POST /api/reviews/{id}/helpful    - Upvote
    POST /api/reviews/{id}/response   - Staff reply
    POST /api/reviews/{id}/verify     - Mark as a verified purchase (staff)
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.api.deps import get_optional_user, pagination_meta, require_staff
from tableside.core.config import get_settings
from tableside.core.rate_limit import GENERAL_LIMIT, limiter
from tableside.database import get_db
from tableside.models import Order, PaymentStatus, Restaurant, Review, User, utcnow
from tableside.schemas import ReviewCreate, ReviewReply, ReviewResponse

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


def _serialize(review: Review) -> dict:
    return ReviewResponse.model_validate(review).model_dump(mode="json")


async def _get_or_404(db: AsyncSession, review_id: int) -> Review:
    review = await db.get(Review, review_id)
    if review is None:
        raise HTTPException(status_code=404, detail=f"Review #{review_id} not found")
    return review


@router.post("", status_code=status.HTTP_201_CREATED)
@limiter.limit(GENERAL_LIMIT)
async def create_review(
    request: Request,
    payload: ReviewCreate,
    user: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant_id = payload.restaurant_id or settings.default_restaurant_id
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is not None and (restaurant.settings or {}).get("review_enabled") is False:
        raise HTTPException(status_code=400, detail="Reviews are disabled")

    name = user.name if user else payload.customer_name
    email = user.email if user else payload.customer_email
    if not name or not email:
        raise HTTPException(status_code=400, detail="Name and email are required for guest reviews")

    verified = False
    if payload.order_id is not None:
        order = await db.get(Order, payload.order_id)
        if order is None:
            raise HTTPException(status_code=404, detail=f"Order #{payload.order_id} not found")
        # A paid order placed under the reviewer's email makes the review verified
        verified = order.customer_email == email.lower() and order.payment_status == PaymentStatus.COMPLETED

    review = Review(
        restaurant_id=restaurant_id,
        user_id=user.id if user else None,
        order_id=payload.order_id,
        customer_name=name,
        customer_email=email.lower(),
        rating=payload.rating,
        title=payload.title,
        comment=payload.comment,
        food_rating=payload.food_rating,
        service_rating=payload.service_rating,
        ambiance_rating=payload.ambiance_rating,
        images=payload.images,
        verified=verified,
    )
    db.add(review)
    await db.commit()
    await db.refresh(review)

    logger.info(f"⭐ Review #{review.id} ({review.rating}/5) verified={verified}")
    return {"success": True, "message": "Thank you for your review!", "data": _serialize(review)}


@router.get("")
async def list_reviews(
    restaurant_id: Optional[str] = Query(None, max_length=50),
    rating: Optional[int] = Query(None, ge=1, le=5),
    verified: Optional[bool] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    conditions = [Review.restaurant_id == (restaurant_id or settings.default_restaurant_id)]
    if rating is not None:
        conditions.append(Review.rating == rating)
    if verified is not None:
        conditions.append(Review.verified.is_(verified))

    total = (await db.execute(select(func.count(Review.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(Review)
        .where(*conditions)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    return {
        "success": True,
        "data": [_serialize(r) for r in result.scalars().all()],
        "pagination": pagination_meta(page, limit, total),
    }


@router.get("/summary")
async def review_summary(
    restaurant_id: Optional[str] = Query(None, max_length=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Average rating and 1-5 distribution over verified reviews."""
    result = await db.execute(
        select(Review.rating, func.count(Review.id))
        .where(
            Review.restaurant_id == (restaurant_id or settings.default_restaurant_id),
            Review.verified.is_(True),
        )
        .group_by(Review.rating)
    )
    distribution = {star: 0 for star in range(1, 6)}
    for star, count in result.all():
        distribution[star] = count

    total = sum(distribution.values())
    average = round(sum(star * count for star, count in distribution.items()) / total, 1) if total else 0.0

    return {
        "success": True,
        "data": {
            "average_rating": average,
            "total_reviews": total,
            "distribution": {str(star): count for star, count in distribution.items()},
        },
    }


@router.post("/{review_id}/helpful")
@limiter.limit(GENERAL_LIMIT)
async def mark_helpful(
    request: Request,
    review_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    review = await _get_or_404(db, review_id)
    review.helpful = (review.helpful or 0) + 1
    await db.commit()
    return {"success": True, "data": {"id": review.id, "helpful": review.helpful}}


@router.post("/{review_id}/response")
async def respond_to_review(
    review_id: int,
    payload: ReviewReply,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    review = await _get_or_404(db, review_id)
    review.response = {
        "text": payload.text,
        "author": staff.name,
        "created_at": utcnow().isoformat(),
    }
    await db.commit()
    await db.refresh(review)
    return {"success": True, "data": _serialize(review)}


@router.post("/{review_id}/verify")
async def verify_review(
    review_id: int,
    staff: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    review = await _get_or_404(db, review_id)
    review.verified = True
    await db.commit()
    await db.refresh(review)
    return {"success": True, "data": _serialize(review)}
