"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .auth import *

__all__ = [
    "ActionResponse",
    "ErrorResponse",
    "SPORT_TYPES",
    "VenueInput",
    "EventCreate",
    "EventUpdate",
    "VenueResponse",
    "EventWithVenues",
    "Credentials",
    "Principal",
    "AuthSession",
]
