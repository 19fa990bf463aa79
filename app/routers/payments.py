"""
Payments router: POST /v1/payments, GET /v1/payments, GET /v1/payments/check/{booking_id},
                  GET /v1/payments/upi/{booking_id}
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.middleware.auth import Actor, get_current_user
from app.schemas.schemas import (
    PaymentCheckResponse, PaymentRequest, PaymentRequestUriResponse, PaymentResponse, RoleEnum,
)
from app.services.payment import check_payment, list_payments, payment_request_uri, record_payment

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter(prefix="/v1/payments", tags=["Payments"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=PaymentResponse)
async def create_payment(
    payload: PaymentRequest,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """
    Record the settlement of a booking. Only the booking's customer may settle it.
    - At most one payment per booking; a retry fails with duplicate_payment.
    - Amount and platform fee are taken from the booking, never from the client.
    - A pending booking becomes confirmed.
    """
    payment = await record_payment(
        db,
        booking_id=payload.booking_id,
        actor_id=actor.user_id,
        method=payload.method,
        transaction_id=payload.transaction_id,
        role=actor.role,
    )
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=list[PaymentResponse])
async def payment_history(
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    payments = await list_payments(db, actor.user_id, as_worker=actor.role is RoleEnum.worker)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get("/check/{booking_id}", response_model=PaymentCheckResponse)
async def check(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    payment = await check_payment(db, booking_id, actor.user_id)
    if payment is None:
        return PaymentCheckResponse(booking_id=booking_id, has_payment=False)
    return PaymentCheckResponse(
        booking_id=booking_id,
        has_payment=True,
        payment_id=payment.id,
        payment_status=payment.status,
        payment_date=payment.created_at,
    )


@router.get("/upi/{booking_id}", response_model=PaymentRequestUriResponse)
async def upi_request(
    booking_id: int,
    db: AsyncSession = Depends(get_db),
    actor: Actor = Depends(get_current_user),
):
    """UPI payment-request URI to render as a QR code. Does not record a payment."""
    booking, uri = await payment_request_uri(db, booking_id, actor.user_id)
    return PaymentRequestUriResponse(
        booking_id=booking.id,
        uri=uri,
        amount=float(booking.total_amount),
        currency=settings.currency,
    )
