from app.models.worker import WorkerProfile
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.review import Review

__all__ = ["WorkerProfile", "Booking", "Payment", "Review"]
