from app.schemas.user import UserCreate, UserResponse, UserLogin, Token
from app.schemas.event import (
    SectionInput,
    EventCreate,
    EventUpdate,
    SectionAvailability,
    EventResponse,
    EventEnvelope,
    EventListResponse,
)
from app.schemas.booking import (
    BookingCreate,
    BookingResponse,
    BookingEnvelope,
    BookingListResponse,
    DashboardResponse,
)

__all__ = [
    "UserCreate", "UserResponse", "UserLogin", "Token",
    "SectionInput", "EventCreate", "EventUpdate", "SectionAvailability",
    "EventResponse", "EventEnvelope", "EventListResponse",
    "BookingCreate", "BookingResponse", "BookingEnvelope", "BookingListResponse",
    "DashboardResponse",
]
