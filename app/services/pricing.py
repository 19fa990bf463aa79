"""
Booking fee calculation.

Runs once when a booking is created; the result is stored on the booking and
never recomputed, even if the worker later changes their hourly rate.
"""
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

# Platform commission on every booking
PLATFORM_FEE_RATE = Decimal("0.40")

CENTS = Decimal("0.01")
SECONDS_PER_HOUR = Decimal(3600)


def duration_hours(booking_date: date, start_time: time, end_time: time) -> Decimal:
    """Length of the requested interval in (fractional) hours."""
    start = datetime.combine(booking_date, start_time)
    end = datetime.combine(booking_date, end_time)
    seconds = Decimal((end - start).days * 86400 + (end - start).seconds)
    return seconds / SECONDS_PER_HOUR


def calculate_fee(
    hourly_rate: Decimal,
    booking_date: date,
    start_time: time,
    end_time: time,
) -> tuple[Decimal, Decimal]:
    """
    Returns (total_amount, platform_fee) as Decimals rounded to cents.
    total = hourly_rate * hours, platform_fee = total * 40%
    """
    hours = duration_hours(booking_date, start_time, end_time)
    if hours <= 0:
        raise ValueError("end_time must be after start_time")

    rate = Decimal(str(hourly_rate))
    if rate <= 0:
        raise ValueError("hourly_rate must be positive")

    total = rate * hours
    fee = total * PLATFORM_FEE_RATE

    return (
        total.quantize(CENTS, rounding=ROUND_HALF_UP),
        fee.quantize(CENTS, rounding=ROUND_HALF_UP),
    )
