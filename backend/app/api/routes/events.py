"""
Public event endpoints. Section availability is computed on every request.
"""

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import MAX_ROW_ID
from app.db.session import get_db
from app.schemas.event import EventListResponse, EventResponse
from app.services.availability_service import event_with_availability, events_with_availability
from app.services.event_service import get_event, list_events

router = APIRouter(prefix="/events", tags=["Events"])


@router.get("/", response_model=EventListResponse)
async def list_events_endpoint(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """
    List active events with pagination, soonest first.
    Not cached: availability must reflect the booking ledger right now.
    """
    events, total = await list_events(db, active_only=True, page=page, page_size=page_size)
    return EventListResponse(
        events=await events_with_availability(db, events),
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int = Path(..., ge=1, le=MAX_ROW_ID),
    db: AsyncSession = Depends(get_db),
):
    """Get a single active event with per-section availability."""
    event = await get_event(db, event_id)
    return await event_with_availability(db, event)
