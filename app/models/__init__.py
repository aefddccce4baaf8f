"""
Database models package
"""

from .event import Event
from .venue import Venue
from .user import User, RefreshToken

__all__ = ["Event", "Venue", "User", "RefreshToken"]
