from datetime import datetime
from decimal import Decimal
from sqlalchemy import Integer, String, Numeric, DateTime, ForeignKey, func
from sqlalchemy.orm import Mapped, mapped_column
from app.database import Base


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # unique: the storage-level guard against a second settlement
    booking_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("bookings.id"), unique=True, nullable=False, index=True
    )
    # copied from the booking at settlement time
    customer_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    worker_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    platform_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    # credit_card | debit_card | upi | paypal | stripe
    method: Mapped[str] = mapped_column(String(20), nullable=False)
    transaction_id: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="completed")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
