"""
Event model
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime
from sqlalchemy.orm import relationship

from app.core.db import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    sport_type = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Venue rows are removed by the ON DELETE CASCADE rule, not by the ORM
    venues = relationship(
        "Venue",
        back_populates="event",
        order_by="Venue.created_at",
        passive_deletes=True,
    )
