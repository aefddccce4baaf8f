"""
GameSync - sports events and venues, FastAPI backend
Main application entry point
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base
from app.models import Event, Venue, User, RefreshToken  # noqa: F401  registers tables
from app.api import routes_auth, routes_events, routes_public
from app.api.middleware import SessionRefreshMiddleware
from app.services.repositories import use_firestore
from app.utils.errors import EventActionError
from app.utils.responses import error_json

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management"""
    if not use_firestore():
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables created")
    else:
        logger.info("Using Firebase backend")
    yield
    logger.info("Application shutdown")

# Create FastAPI application
app = FastAPI(
    title="GameSync",
    description="Sports events with multiple venues",
    version="1.0.0",
    lifespan=lifespan
)

# Added last, CORS runs outermost so preflight requests skip the session check
app.add_middleware(SessionRefreshMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(EventActionError)
async def event_action_error_handler(request: Request, exc: EventActionError):
    logger.error(f"Action failed on {request.url.path}: {exc}")
    return error_json(message=str(exc), status_code=500)

# Mount static files
app.mount("/static", StaticFiles(directory=str(Path(__file__).resolve().parent / "static")), name="static")

# Include routers
app.include_router(routes_public.router, tags=["public"])
app.include_router(routes_auth.router, tags=["auth"])
app.include_router(routes_events.router, tags=["events"])

# Note: Run this ASGI app directly with Uvicorn or Hypercorn. For Gunicorn,
# use `uvicorn.workers.UvicornWorker` instead of wrapping the app.

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="127.0.0.1",
        port=8000,
        reload=True
    )
