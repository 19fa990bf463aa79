"""
Booking status state machine.

The single authority for booking status writes. Every change goes through a
compare-and-swap UPDATE keyed on (id, expected status), so two concurrent
requests cannot both move a booking out of the same state.

    pending      -> confirmed | rejected          (worker)
                 -> cancelled                     (customer)
    confirmed    -> in_progress | cancelled       (worker)
                 -> cancelled                     (customer)
    in_progress  -> completed | cancelled         (worker)
                 -> cancelled                     (customer)
    completed, cancelled, rejected                (terminal)
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import Forbidden, InvalidTransition, NotFound
from app.middleware.auth import Actor
from app.models.booking import Booking
from app.schemas.schemas import BookingStatusEnum as S, RoleEnum

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[S, dict[RoleEnum, tuple[S, ...]]] = {
    S.pending: {
        RoleEnum.worker: (S.confirmed, S.rejected),
        RoleEnum.customer: (S.cancelled,),
    },
    S.confirmed: {
        RoleEnum.worker: (S.in_progress, S.cancelled),
        RoleEnum.customer: (S.cancelled,),
    },
    S.in_progress: {
        RoleEnum.worker: (S.completed, S.cancelled),
        RoleEnum.customer: (S.cancelled,),
    },
    S.completed: {},
    S.cancelled: {},
    S.rejected: {},
}

TERMINAL_STATES = frozenset(s for s, by_role in ALLOWED_TRANSITIONS.items() if not by_role)


def allowed_transitions(current: S, role: RoleEnum) -> tuple[S, ...]:
    return ALLOWED_TRANSITIONS.get(S(current), {}).get(RoleEnum(role), ())


def is_valid_transition(current: S, requested: S, role: RoleEnum) -> bool:
    return S(requested) in allowed_transitions(current, role)


async def load_booking_for_party(db: AsyncSession, booking_id: int, user_id: int) -> Booking:
    """
    Fetch a booking visible to `user_id`.
    Absent bookings and bookings of other people look the same to the caller.
    """
    result = await db.execute(
        select(Booking).where(
            Booking.id == booking_id,
            (Booking.customer_id == user_id) | (Booking.worker_id == user_id),
        )
    )
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found", {"booking_id": booking_id})
    return booking


async def compare_and_set_status(
    db: AsyncSession,
    booking_id: int,
    expected: S,
    new: S,
) -> bool:
    """
    Conditional status write. Returns False when the stored status is no longer
    `expected`. Does not commit; the caller owns the transaction.
    """
    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking_id, Booking.status == S(expected).value)
        .values(status=S(new).value)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def transition(
    db: AsyncSession,
    booking_id: int,
    requested: S,
    actor: Actor,
) -> tuple[Booking, S]:
    """
    Apply a role-gated status transition.
    Returns (updated booking, previous status).
    """
    requested = S(requested)
    booking = await load_booking_for_party(db, booking_id, actor.user_id)

    party_role = booking.party_role(actor.user_id)
    if party_role != actor.role.value:
        raise Forbidden(
            f"You take part in this booking as {party_role}, not {actor.role.value}",
            {"booking_id": booking_id, "role": actor.role.value},
        )

    current = S(booking.status)
    allowed = allowed_transitions(current, actor.role)
    if requested not in allowed:
        raise InvalidTransition(current.value, requested.value, actor.role.value, [s.value for s in allowed])

    swapped = await compare_and_set_status(db, booking_id, current, requested)
    if not swapped:
        # Lost the race against another transition; report against what won.
        await db.rollback()
        await db.refresh(booking)
        observed = S(booking.status)
        allowed = allowed_transitions(observed, actor.role)
        raise InvalidTransition(observed.value, requested.value, actor.role.value, [s.value for s in allowed])

    await db.commit()
    await db.refresh(booking)

    logger.info(
        "Booking %s status %s -> %s by %s=%s",
        booking_id, current.value, requested.value, actor.role.value, actor.user_id,
    )
    return booking, current
