"""
Bookings router: POST /v1/bookings, GET /v1/bookings, GET /v1/bookings/{id},
                  PUT /v1/bookings/{id}/status, POST /v1/bookings/{id}/review
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.auth import Actor, get_current_customer, get_current_user
from app.redis_client import get_redis
from app.schemas.schemas import (
    BookingCreateRequest, BookingListResponse, BookingResponse, BookingStatusEnum,
    BookingStatusUpdateRequest, BookingTransitionResponse,
    ReviewCreateRequest, ReviewCreateResponse, ReviewResponse,
)
from app.services import booking_state
from app.services.bookings import create_booking, list_bookings
from app.services.reviews import add_review

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/v1/bookings", tags=["Bookings"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=BookingResponse)
async def create(
    payload: BookingCreateRequest,
    db: AsyncSession = Depends(get_db),
    customer: Actor = Depends(get_current_customer),
):
    """Book a worker. Total and platform fee are fixed now, from the worker's current rate."""
    booking = await create_booking(db, customer.user_id, payload)
    return BookingResponse.model_validate(booking)


@router.get("", response_model=BookingListResponse)
async def list_mine(
    status_filter: Optional[BookingStatusEnum] = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    bookings, by_status = await list_bookings(db, actor, status_filter)
    return BookingListResponse(
        items=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
        by_status=by_status,
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    booking = await booking_state.load_booking_for_party(db, booking_id, actor.user_id)
    return BookingResponse.model_validate(booking)


@router.put("/{booking_id}/status", response_model=BookingTransitionResponse)
async def update_status(
    booking_id: int,
    payload: BookingStatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """Role-gated status transition; see app.services.booking_state for the table."""
    booking, previous = await booking_state.transition(db, booking_id, payload.status, actor)
    return BookingTransitionResponse(
        booking=BookingResponse.model_validate(booking),
        previous_status=previous,
        new_status=booking.status,
    )


@router.post("/{booking_id}/review", status_code=status.HTTP_201_CREATED, response_model=ReviewCreateResponse)
async def review(
    booking_id: int,
    payload: ReviewCreateRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    redis = await get_redis()
    created, worker = await add_review(
        db, booking_id, actor.user_id, payload.rating, payload.comment, redis=redis, role=actor.role
    )
    return ReviewCreateResponse(
        review=ReviewResponse.model_validate(created),
        worker_rating=float(worker.rating),
        worker_total_reviews=worker.total_reviews,
    )
