"""
Booking creation and party-filtered booking queries.
"""
import logging
from collections import Counter
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidState, NotFound, StorageError, ValidationError
from app.middleware.auth import Actor
from app.models.booking import Booking
from app.models.worker import WorkerProfile
from app.schemas.schemas import BookingCreateRequest, BookingStatusEnum, RoleEnum
from app.services.pricing import calculate_fee

logger = logging.getLogger(__name__)


async def create_booking(db: AsyncSession, customer_id: int, payload: BookingCreateRequest) -> Booking:
    """
    Create a pending booking against an available worker.
    The fee is computed here, once, from the worker's current hourly rate.
    """
    if payload.end_time <= payload.start_time:
        raise ValidationError(
            "end_time must be after start_time",
            {"start_time": payload.start_time.isoformat(), "end_time": payload.end_time.isoformat()},
        )
    if payload.worker_id == customer_id:
        raise ValidationError("You cannot book yourself", {"worker_id": payload.worker_id})

    worker = await db.get(WorkerProfile, payload.worker_id)
    if worker is None:
        raise NotFound("Worker not found", {"worker_id": payload.worker_id})
    if not worker.availability:
        raise InvalidState("Worker is not available", {"worker_id": payload.worker_id})

    total_amount, platform_fee = calculate_fee(
        worker.hourly_rate, payload.booking_date, payload.start_time, payload.end_time
    )

    booking = Booking(
        customer_id=customer_id,
        worker_id=payload.worker_id,
        service_type=payload.service_type.value,
        booking_date=payload.booking_date,
        start_time=payload.start_time,
        end_time=payload.end_time,
        total_amount=total_amount,
        platform_fee=platform_fee,
        status=BookingStatusEnum.pending.value,
        description=payload.description,
    )
    db.add(booking)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise StorageError("Could not store booking") from exc
    await db.refresh(booking)

    logger.info(
        "Booking %s created customer=%s worker=%s total=%s fee=%s",
        booking.id, customer_id, booking.worker_id, total_amount, platform_fee,
    )
    return booking


async def list_bookings(
    db: AsyncSession,
    actor: Actor,
    status: Optional[BookingStatusEnum] = None,
) -> tuple[list[Booking], dict[str, int]]:
    """Bookings of the caller in their role, newest date first, plus per-status counts."""
    owner_col = Booking.worker_id if actor.role is RoleEnum.worker else Booking.customer_id
    result = await db.execute(
        select(Booking)
        .where(owner_col == actor.user_id)
        .order_by(Booking.booking_date.desc(), Booking.start_time.desc(), Booking.id.desc())
    )
    bookings = list(result.scalars().all())

    by_status = dict(Counter(b.status for b in bookings))
    if status is not None:
        bookings = [b for b in bookings if b.status == status.value]
    return bookings, by_status
