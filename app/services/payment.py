"""
Payment ledger.

Records at most one settlement per booking. The unique constraint on
payments.booking_id is the authoritative duplicate guard; the earlier lookup
only lets an obvious retry fail fast. The payment insert and the booking
status advance commit together or not at all.
"""
import logging
from typing import Optional
from urllib.parse import quote, urlencode

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.errors import DuplicatePayment, InvalidMethod, InvalidState, MissingReference, Unauthorized
from app.models.booking import Booking
from app.models.payment import Payment
from app.schemas.schemas import BookingStatusEnum as S, PaymentMethodEnum, PaymentStatusEnum, RoleEnum
from app.services.booking_state import compare_and_set_status, load_booking_for_party

logger = logging.getLogger(__name__)
settings = get_settings()

# Booking status after a successful settlement, keyed by status at settlement time.
# Only pending moves; completed is reached solely by the worker finishing the job.
POST_PAYMENT_STATUS: dict[S, S] = {
    S.pending: S.confirmed,
    S.confirmed: S.confirmed,
    S.in_progress: S.in_progress,
}

METHOD_ALIASES = {"qr": PaymentMethodEnum.upi}


def parse_method(raw: Optional[str]) -> PaymentMethodEnum:
    value = (raw or "").strip().lower()
    if value in METHOD_ALIASES:
        return METHOD_ALIASES[value]
    try:
        return PaymentMethodEnum(value)
    except ValueError:
        raise InvalidMethod(
            f"Invalid payment method: {raw!r}",
            {"method": raw, "allowed_methods": [m.value for m in PaymentMethodEnum]},
        )


async def get_payment_for_booking(db: AsyncSession, booking_id: int) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.booking_id == booking_id))
    return result.scalar_one_or_none()


async def record_payment(
    db: AsyncSession,
    booking_id: int,
    actor_id: int,
    method: Optional[str],
    transaction_id: Optional[str],
    role: RoleEnum = RoleEnum.customer,
) -> Payment:
    # 1. Only the booking's customer may settle it
    result = await db.execute(
        select(Booking).where(Booking.id == booking_id, Booking.customer_id == actor_id)
    )
    booking = result.scalar_one_or_none()
    if booking is None or role is not RoleEnum.customer:
        raise Unauthorized("Booking not found or unauthorized", {"booking_id": booking_id})

    # 2. Fast path for retries; the insert below is the real guard
    if await get_payment_for_booking(db, booking_id) is not None:
        raise DuplicatePayment("Payment already exists for this booking", {"booking_id": booking_id})

    # 3. + 4. Request shape
    payment_method = parse_method(method)
    reference = (transaction_id or "").strip()
    if not reference:
        raise MissingReference(
            "Transaction ID is required for payment verification", {"booking_id": booking_id}
        )

    # 5. Booking must still be payable
    observed = S(booking.status)
    target = POST_PAYMENT_STATUS.get(observed)
    if target is None:
        raise InvalidState(
            f"Cannot pay for a booking in '{observed.value}' status",
            {
                "booking_id": booking_id,
                "current_status": observed.value,
                "payable_statuses": [s.value for s in POST_PAYMENT_STATUS],
            },
        )

    payment = Payment(
        booking_id=booking.id,
        customer_id=booking.customer_id,
        worker_id=booking.worker_id,
        amount=booking.total_amount,
        platform_fee=booking.platform_fee,
        method=payment_method.value,
        transaction_id=reference,
        status=PaymentStatusEnum.completed.value,
    )
    db.add(payment)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.info("Duplicate payment rejected at insert for booking=%s", booking_id)
        raise DuplicatePayment("Payment already exists for this booking", {"booking_id": booking_id})

    if not await compare_and_set_status(db, booking_id, observed, target):
        await db.rollback()
        raise InvalidState(
            "Booking status changed while recording the payment",
            {"booking_id": booking_id, "expected_status": observed.value},
        )

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise DuplicatePayment("Payment already exists for this booking", {"booking_id": booking_id})
    await db.refresh(payment)

    logger.info(
        "Payment %s recorded booking=%s amount=%s fee=%s method=%s booking_status %s -> %s",
        payment.id, booking_id, payment.amount, payment.platform_fee,
        payment.method, observed.value, target.value,
    )
    return payment


async def list_payments(db: AsyncSession, user_id: int, as_worker: bool) -> list[Payment]:
    owner_col = Payment.worker_id if as_worker else Payment.customer_id
    result = await db.execute(
        select(Payment).where(owner_col == user_id).order_by(Payment.created_at.desc(), Payment.id.desc())
    )
    return list(result.scalars().all())


async def check_payment(db: AsyncSession, booking_id: int, user_id: int) -> Optional[Payment]:
    """Payment of a booking, visible only to the booking's two parties."""
    await load_booking_for_party(db, booking_id, user_id)
    return await get_payment_for_booking(db, booking_id)


def build_upi_uri(booking_id: int, amount) -> str:
    """UPI deep link for client-side QR rendering."""
    params = {
        "pa": settings.upi_payee_id,
        "pn": settings.upi_payee_name,
        "tr": f"BK-{booking_id}",
        "tn": f"Payment for booking ID: {booking_id}",
        "am": f"{amount:.2f}",
        "cu": settings.currency,
    }
    return "upi://pay?" + urlencode(params, quote_via=quote)


async def payment_request_uri(db: AsyncSession, booking_id: int, user_id: int) -> tuple[Booking, str]:
    """Read-only: never records a payment."""
    booking = await load_booking_for_party(db, booking_id, user_id)
    return booking, build_upi_uri(booking.id, booking.total_amount)
