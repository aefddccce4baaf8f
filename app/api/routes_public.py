"""
Page routes and health check
"""

from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.schemas.event import SPORT_TYPES
from app.services.event_service import EventService
from app.services.session import BackendClient, get_backend

router = APIRouter()

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[2] / "templates"))

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/", response_class=HTMLResponse)
async def home(request: Request):
    """Landing page"""
    return templates.TemplateResponse(request, "home.html", {
        "title": "GameSync",
        "principal": getattr(request.state, "principal", None)
    })

@router.get("/dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    q: Optional[str] = Query(None),
    sport_type: Optional[str] = Query(None),
    backend: BackendClient = Depends(get_backend)
):
    """Events dashboard with search and sport filter"""
    if q or sport_type:
        result = EventService.search_and_filter_events(backend, q, sport_type)
    else:
        result = EventService.get_events(backend)

    return templates.TemplateResponse(request, "dashboard.html", {
        "title": "Dashboard",
        "principal": getattr(request.state, "principal", None),
        "events": result.data if result.ok else [],
        "error": result.error,
        "q": q or "",
        "sport_type": sport_type or "",
        "sport_types": SPORT_TYPES
    })

@router.get("/api/sport-types")
async def sport_types():
    """Suggested sport types for event forms"""
    return {"sport_types": SPORT_TYPES}

@router.get("/events/new", response_class=HTMLResponse)
async def new_event_page(request: Request):
    """Create form; submits to POST /api/events"""
    return templates.TemplateResponse(request, "event_form.html", {
        "title": "New event",
        "principal": getattr(request.state, "principal", None),
        "event": None,
        "sport_types": SPORT_TYPES
    })

@router.get("/events/{event_id}", response_class=HTMLResponse)
async def event_detail_page(request: Request, event_id: str, backend: BackendClient = Depends(get_backend)):
    """One event with its venues"""
    result = EventService.get_event_by_id(backend, event_id)
    return templates.TemplateResponse(request, "event_detail.html", {
        "title": result.data.name if result.ok else "Event",
        "principal": getattr(request.state, "principal", None),
        "event": result.data,
        "error": result.error
    }, status_code=200 if result.ok else 404)

@router.get("/events/{event_id}/edit", response_class=HTMLResponse)
async def edit_event_page(request: Request, event_id: str, backend: BackendClient = Depends(get_backend)):
    """Edit form; submits to PATCH /api/events/{id}"""
    result = EventService.get_event_by_id(backend, event_id)
    if not result.ok:
        return templates.TemplateResponse(request, "event_detail.html", {
            "title": "Event",
            "principal": getattr(request.state, "principal", None),
            "event": None,
            "error": result.error
        }, status_code=404)

    return templates.TemplateResponse(request, "event_form.html", {
        "title": f"Edit {result.data.name}",
        "principal": getattr(request.state, "principal", None),
        "event": result.data,
        "sport_types": SPORT_TYPES
    })
