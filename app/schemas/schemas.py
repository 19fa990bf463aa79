from datetime import date, datetime, time
from enum import Enum
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class RoleEnum(str, Enum):
    customer = "customer"
    worker = "worker"


class ServiceTypeEnum(str, Enum):
    home_cleaning = "home_cleaning"
    plumbing = "plumbing"
    electrical_work = "electrical_work"
    painting = "painting"
    carpentry = "carpentry"
    gardening = "gardening"


class BookingStatusEnum(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"
    rejected = "rejected"


class PaymentMethodEnum(str, Enum):
    credit_card = "credit_card"
    debit_card = "debit_card"
    upi = "upi"
    paypal = "paypal"
    stripe = "stripe"


class PaymentStatusEnum(str, Enum):
    completed = "completed"


# ---------------------------------------------------------------------------
# Booking schemas
# ---------------------------------------------------------------------------

class BookingCreateRequest(BaseModel):
    worker_id: int = Field(..., gt=0)
    service_type: ServiceTypeEnum
    booking_date: date
    start_time: time
    end_time: time
    description: Optional[str] = Field(default=None, max_length=2000)


class BookingStatusUpdateRequest(BaseModel):
    status: BookingStatusEnum

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v


class BookingResponse(BaseModel):
    id: int
    customer_id: int
    worker_id: int
    service_type: ServiceTypeEnum
    booking_date: date
    start_time: time
    end_time: time
    total_amount: float
    platform_fee: float
    status: BookingStatusEnum
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class BookingTransitionResponse(BaseModel):
    booking: BookingResponse
    previous_status: BookingStatusEnum
    new_status: BookingStatusEnum


class BookingListResponse(BaseModel):
    items: list[BookingResponse]
    total: int
    by_status: dict[str, int]


# ---------------------------------------------------------------------------
# Payment schemas
# ---------------------------------------------------------------------------

class PaymentRequest(BaseModel):
    booking_id: int = Field(..., gt=0)
    # checked by the ledger so an unknown method gets its own error code
    method: str
    transaction_id: Optional[str] = None


class PaymentResponse(BaseModel):
    id: int
    booking_id: int
    customer_id: int
    worker_id: int
    amount: float
    platform_fee: float
    method: PaymentMethodEnum
    transaction_id: str
    status: PaymentStatusEnum
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentCheckResponse(BaseModel):
    booking_id: int
    has_payment: bool
    payment_id: Optional[int] = None
    payment_status: Optional[PaymentStatusEnum] = None
    payment_date: Optional[datetime] = None


class PaymentRequestUriResponse(BaseModel):
    booking_id: int
    uri: str
    amount: float
    currency: str


# ---------------------------------------------------------------------------
# Review schemas
# ---------------------------------------------------------------------------

class ReviewCreateRequest(BaseModel):
    # range and integer checks happen in the review gate so they report invalid_rating
    rating: Any
    comment: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class ReviewResponse(BaseModel):
    id: int
    booking_id: int
    customer_id: int
    worker_id: int
    rating: int
    comment: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ReviewCreateResponse(BaseModel):
    review: ReviewResponse
    worker_rating: float
    worker_total_reviews: int


class WorkerReviewStats(BaseModel):
    worker_id: int
    total_reviews: int
    average_rating: float
    five_star: int = 0
    four_star: int = 0
    three_star: int = 0
    two_star: int = 0
    one_star: int = 0
