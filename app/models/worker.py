from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, Boolean, Numeric, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class WorkerProfile(Base):
    """Slice of the externally managed worker profile read and written by the booking core."""

    __tablename__ = "worker_profiles"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    availability: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # cached aggregate over reviews, maintained by the review gate
    rating: Mapped[Decimal] = mapped_column(Numeric(3, 2), nullable=False, default=Decimal("0.00"))
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
