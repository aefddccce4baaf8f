"""
Event-related Pydantic schemas
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_validator

SPORT_TYPES = [
    "Football",
    "Basketball",
    "Soccer",
    "Tennis",
    "Baseball",
    "Hockey",
    "Volleyball",
    "Golf",
    "Other",
]

class VenueInput(BaseModel):
    """A venue submitted with an event"""
    venue_name: str = Field(min_length=1)

class EventCreate(BaseModel):
    """Schema for creating an event; at least one venue is required"""
    name: str = Field(min_length=1)
    date: datetime
    sport_type: str = Field(min_length=1)
    description: Optional[str] = None
    venues: List[VenueInput] = Field(min_length=1)

class EventUpdate(BaseModel):
    """Partial event update. Omitted fields are left untouched; a venues
    list, when given, replaces the current venues entirely."""
    name: Optional[str] = Field(default=None, min_length=1)
    date: Optional[datetime] = None
    sport_type: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    venues: Optional[List[VenueInput]] = Field(default=None, min_length=1)

    @field_validator("name", "date", "sport_type", "venues")
    @classmethod
    def reject_null(cls, value):
        # Omit a field to leave it unchanged; null would clear a required column
        if value is None:
            raise ValueError("Field cannot be null")
        return value

class VenueResponse(BaseModel):
    """Venue row"""
    id: str
    event_id: str
    venue_name: str
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class EventWithVenues(BaseModel):
    """Event row together with its venues"""
    id: str
    name: str
    date: datetime
    sport_type: str
    description: Optional[str] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    venues: List[VenueResponse] = []

    model_config = ConfigDict(from_attributes=True)
