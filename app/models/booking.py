from datetime import date, datetime, time
from decimal import Decimal
from sqlalchemy import Integer, String, Text, Date, Time, Numeric, DateTime, ForeignKey, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_bookings_time_range"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    worker_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("worker_profiles.user_id"), nullable=False, index=True
    )

    service_type: Mapped[str] = mapped_column(String(30), nullable=False)
    booking_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    # fixed at creation, never recomputed
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # pending | confirmed | in_progress | completed | cancelled | rejected
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending", index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def party_role(self, user_id: int) -> str | None:
        """Return the capacity in which `user_id` takes part in this booking, if any."""
        if user_id == self.worker_id:
            return "worker"
        if user_id == self.customer_id:
            return "customer"
        return None
