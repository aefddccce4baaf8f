"""
Event API routes - the session middleware guarantees an authenticated caller
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query

from app.schemas.event import EventCreate, EventUpdate
from app.services.event_service import EventService
from app.services.session import BackendClient, get_backend
from app.utils.responses import to_json_response

router = APIRouter()

@router.get("/api/events")
async def list_events(backend: BackendClient = Depends(get_backend)):
    """List all events with venues, ordered by date"""
    return to_json_response(EventService.get_events(backend))

@router.get("/api/events/search")
async def search_events(
    q: Optional[str] = Query(None),
    sport_type: Optional[str] = Query(None),
    backend: BackendClient = Depends(get_backend)
):
    """Search events by name and filter by sport type"""
    return to_json_response(EventService.search_and_filter_events(backend, q, sport_type))

@router.get("/api/events/{event_id}")
async def get_event(event_id: str, backend: BackendClient = Depends(get_backend)):
    """Get one event with its venues"""
    return to_json_response(EventService.get_event_by_id(backend, event_id), error_status=404)

@router.post("/api/events")
async def create_event(event_data: EventCreate, backend: BackendClient = Depends(get_backend)):
    """Create an event together with its venues"""
    result = EventService.create_event(backend, event_data)
    return to_json_response(result, success_status=201)

@router.patch("/api/events/{event_id}")
async def update_event(event_id: str, event_data: EventUpdate, backend: BackendClient = Depends(get_backend)):
    """Update event fields and optionally replace its venues"""
    return to_json_response(EventService.update_event(backend, event_id, event_data))

@router.delete("/api/events/{event_id}")
async def delete_event(event_id: str, backend: BackendClient = Depends(get_backend)):
    """Delete an event; its venues are removed with it"""
    return to_json_response(EventService.delete_event(backend, event_id))

@router.post("/events/{event_id}/delete")
async def delete_event_form(event_id: str, backend: BackendClient = Depends(get_backend)):
    """Form action: delete then go back to the dashboard"""
    return EventService.delete_event_action(backend, event_id)
