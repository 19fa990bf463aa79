"""
Review gate and worker rating aggregate.
"""
import json
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional

import redis.asyncio as aioredis
from sqlalchemy import case, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import DuplicateReview, Forbidden, InvalidRating, InvalidState, NotFound
from app.models.booking import Booking
from app.models.review import Review
from app.models.worker import WorkerProfile
from app.redis_client import cache_delete, cache_get, cache_set
from app.schemas.schemas import BookingStatusEnum, RoleEnum, WorkerReviewStats

logger = logging.getLogger(__name__)
settings = get_settings()

MIN_RATING = 1
MAX_RATING = 5


def stats_cache_key(worker_id: int) -> str:
    return f"worker:{worker_id}:review_stats"


def _round_rating(value) -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _star_count(stars: int):
    return func.count(case((Review.rating == stars, 1)))


async def add_review(
    db: AsyncSession,
    booking_id: int,
    customer_id: int,
    rating: Any,
    comment: Optional[str],
    redis: Optional[aioredis.Redis] = None,
    role: RoleEnum = RoleEnum.customer,
) -> tuple[Review, WorkerProfile]:
    """
    Attach the single review of a completed booking and refresh the worker aggregate.
    Returns (review, worker profile with the new aggregate).
    """
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": booking_id})
    if booking.customer_id != customer_id or role is not RoleEnum.customer:
        raise Forbidden("You are not authorized to review this booking", {"booking_id": booking_id})
    if booking.status != BookingStatusEnum.completed.value:
        raise InvalidState(
            "Booking must be completed before reviewing",
            {"booking_id": booking_id, "current_status": booking.status},
        )

    existing = await db.execute(select(Review.id).where(Review.booking_id == booking_id))
    if existing.first() is not None:
        raise DuplicateReview("You have already reviewed this booking", {"booking_id": booking_id})

    # bool is an int subclass; JSON true must not count as a 1-star rating
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRating(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}",
            {"rating": rating, "min": MIN_RATING, "max": MAX_RATING},
        )

    # Serialise aggregate refreshes per worker: lock the profile row first.
    worker_result = await db.execute(
        select(WorkerProfile).where(WorkerProfile.user_id == booking.worker_id).with_for_update()
    )
    worker = worker_result.scalar_one()

    review = Review(
        booking_id=booking.id,
        customer_id=customer_id,
        worker_id=booking.worker_id,
        rating=rating,
        comment=comment,
    )
    db.add(review)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info("Duplicate review rejected at insert for booking=%s", booking_id)
        raise DuplicateReview("You have already reviewed this booking", {"booking_id": booking_id})

    agg = await db.execute(
        select(func.avg(Review.rating), func.count(Review.id)).where(Review.worker_id == booking.worker_id)
    )
    avg_rating, total_reviews = agg.one()
    await db.execute(
        update(WorkerProfile)
        .where(WorkerProfile.user_id == booking.worker_id)
        .values(rating=_round_rating(avg_rating), total_reviews=total_reviews)
        .execution_options(synchronize_session=False)
    )

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicateReview("You have already reviewed this booking", {"booking_id": booking_id})
    await db.refresh(review)
    await db.refresh(worker)

    if redis is not None:
        await cache_delete(redis, stats_cache_key(booking.worker_id))

    logger.info(
        "Review %s added booking=%s worker=%s rating=%s -> worker rating=%s over %s reviews",
        review.id, booking_id, booking.worker_id, rating, worker.rating, worker.total_reviews,
    )
    return review, worker


async def list_worker_reviews(db: AsyncSession, worker_id: int) -> list[Review]:
    result = await db.execute(
        select(Review).where(Review.worker_id == worker_id).order_by(Review.created_at.desc(), Review.id.desc())
    )
    return list(result.scalars().all())


async def worker_review_stats(
    db: AsyncSession,
    worker_id: int,
    redis: Optional[aioredis.Redis] = None,
) -> WorkerReviewStats:
    """Aggregate for a worker, cache-aside in Redis."""
    if redis is not None:
        cached = await cache_get(redis, stats_cache_key(worker_id))
        if cached:
            return WorkerReviewStats(**json.loads(cached))

    worker = await db.get(WorkerProfile, worker_id)
    if worker is None:
        raise NotFound("Worker not found", {"worker_id": worker_id})

    result = await db.execute(
        select(
            func.count(Review.id),
            func.avg(Review.rating),
            _star_count(5), _star_count(4), _star_count(3), _star_count(2), _star_count(1),
        ).where(Review.worker_id == worker_id)
    )
    total, avg_rating, five, four, three, two, one = result.one()

    stats = WorkerReviewStats(
        worker_id=worker_id,
        total_reviews=total,
        average_rating=float(_round_rating(avg_rating)),
        five_star=five,
        four_star=four,
        three_star=three,
        two_star=two,
        one_star=one,
    )

    if redis is not None:
        await cache_set(redis, stats_cache_key(worker_id), stats.model_dump_json(), settings.review_stats_cache_ttl_seconds)
    return stats
