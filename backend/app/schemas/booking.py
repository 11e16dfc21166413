"""
Pydantic schemas for booking-related request/response validation.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from app.db.base import MAX_ROW_ID


class BookingCreate(BaseModel):
    event_id: int = Field(..., ge=1, le=MAX_ROW_ID)
    section_name: str = Field(..., min_length=1, max_length=50)
    customer_name: str = Field(..., min_length=1, max_length=50)
    customer_email: EmailStr
    customer_phone: str = Field(..., min_length=1, max_length=30)
    quantity: int = Field(..., ge=1, le=10)

    model_config = {"str_strip_whitespace": True}

    @field_validator("customer_email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class EventSummary(BaseModel):
    id: int
    title: str
    date: date_type
    time: str
    location: str

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: int
    booking_id: str
    event_id: int
    section_id: int
    section_name: str
    user_id: Optional[int]
    customer_name: str
    customer_email: str
    customer_phone: str
    quantity: int
    status: str
    total_amount: Decimal
    booking_date: datetime
    event: Optional[EventSummary] = None

    model_config = {"from_attributes": True}


class BookingEnvelope(BaseModel):
    message: str
    booking: BookingResponse


class BookingListResponse(BaseModel):
    bookings: list[BookingResponse]
    total: int
    total_pages: int
    current_page: int


class DashboardStats(BaseModel):
    total_events: int
    active_events: int
    total_bookings: int
    reserved_bookings: int
    confirmed_bookings: int
    cancelled_bookings: int
    total_revenue: Decimal


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_bookings: list[BookingResponse]
