"""
Pydantic schemas for event-related request/response validation.

Sections are validated as a list so duplicate names can be rejected before
anything touches the database.
"""

from datetime import date as date_type, datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator

from app.db.base import MAX_ROW_ID


class SectionInput(BaseModel):
    # Present when an update renames an existing section
    id: Optional[int] = Field(None, ge=1, le=MAX_ROW_ID)
    name: str = Field(..., min_length=1, max_length=50)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    total_capacity: int = Field(..., ge=1, le=100000)
    description: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=20)

    model_config = {"str_strip_whitespace": True}


def _unique_section_names(sections: Optional[list[SectionInput]]) -> Optional[list[SectionInput]]:
    if sections is None:
        return sections
    seen = set()
    for section in sections:
        if section.name in seen:
            raise ValueError(f"Duplicate section name: {section.name}")
        seen.add(section.name)
    return sections


def _coerce_date(value):
    # Accept full ISO-8601 datetimes; only the calendar date is stored
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=100)
    date: date_type
    time: str = Field(..., min_length=1, max_length=20)
    location: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=500)
    sections: list[SectionInput] = Field(..., min_length=1)
    venue_layout: Optional[str] = Field(None, max_length=500)
    venue_layout_description: Optional[str] = Field(None, max_length=200)
    is_active: bool = True

    model_config = {"str_strip_whitespace": True}

    @field_validator("sections")
    @classmethod
    def check_unique_sections(cls, value):
        return _unique_section_names(value)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, value):
        return _coerce_date(value)


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=100)
    date: Optional[date_type] = None
    time: Optional[str] = Field(None, min_length=1, max_length=20)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1, max_length=500)
    sections: Optional[list[SectionInput]] = Field(None, min_length=1)
    venue_layout: Optional[str] = Field(None, max_length=500)
    venue_layout_description: Optional[str] = Field(None, max_length=200)
    is_active: Optional[bool] = None

    model_config = {"str_strip_whitespace": True}

    @field_validator("sections")
    @classmethod
    def check_unique_sections(cls, value):
        return _unique_section_names(value)

    @field_validator("date", mode="before")
    @classmethod
    def coerce_date(cls, value):
        return _coerce_date(value)


class SectionAvailability(BaseModel):
    id: int
    name: str
    price: Decimal
    total_capacity: int
    description: Optional[str]
    color: str
    available_capacity: int
    is_available: bool


class EventResponse(BaseModel):
    id: int
    title: str
    date: date_type
    time: str
    location: str
    description: str
    venue_layout: Optional[str]
    venue_layout_description: Optional[str]
    is_active: bool
    sections: list[SectionAvailability]
    created_at: datetime


class EventEnvelope(BaseModel):
    message: str
    event: EventResponse


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int
    page: int
    page_size: int
