from app.models.user import User, UserRole
from app.models.event import Event, Section
from app.models.booking import Booking, BookingStatus

__all__ = ["User", "UserRole", "Event", "Section", "Booking", "BookingStatus"]
