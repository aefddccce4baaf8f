"""
Event and venue workflows used by the dashboard and the JSON API
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi.responses import RedirectResponse

from app.schemas.common import ActionResponse
from app.schemas.event import EventCreate, EventUpdate, EventWithVenues
from app.services.repositories import EventRepo, VenueRepo, use_firestore
from app.services.session import BackendClient
from app.utils.errors import AuthError, EventActionError
from app.utils.responses import success_response, error_response, handle_action_error

logger = logging.getLogger(__name__)

SCALAR_FIELDS = ("name", "date", "sport_type", "description")


def _to_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc) if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _scalar_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    fields = {k: v for k, v in data.items() if k in SCALAR_FIELDS}
    if fields.get("date") is not None:
        fields["date"] = _to_utc(fields["date"])
    return fields


class EventService:
    """Event read/write workflows. Every method returns an ActionResponse."""

    # -------- reads --------

    @staticmethod
    def _fetch(backend: BackendClient, event_id: str) -> EventWithVenues:
        if not use_firestore():
            row = EventRepo.get_sql(backend.db, event_id)
        else:
            row = EventRepo.get_fs(event_id)
        return EventWithVenues.model_validate(row)

    @staticmethod
    def _query(backend: BackendClient, search_term: Optional[str], sport_type: Optional[str]) -> List[EventWithVenues]:
        if not use_firestore():
            rows = EventRepo.list_sql(backend.db, search_term, sport_type)
        else:
            rows = EventRepo.list_fs(search_term, sport_type)
        return [EventWithVenues.model_validate(row) for row in rows]

    @staticmethod
    def get_events(backend: BackendClient) -> ActionResponse:
        """All events with their venues, soonest first"""
        try:
            return success_response(EventService._query(backend, None, None))
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def get_event_by_id(backend: BackendClient, event_id: str) -> ActionResponse:
        try:
            return success_response(EventService._fetch(backend, event_id))
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def search_and_filter_events(
        backend: BackendClient,
        search_term: Optional[str] = None,
        sport_type: Optional[str] = None
    ) -> ActionResponse:
        """Case-insensitive name match AND exact sport type; omitted filters match everything"""
        try:
            return success_response(EventService._query(backend, search_term or None, sport_type or None))
        except Exception as e:
            return handle_action_error(e)

    # -------- writes --------

    @staticmethod
    def create_event(backend: BackendClient, data: EventCreate) -> ActionResponse:
        """Insert the event, then its venues, then read both back.

        The two inserts are separate commits. A venue failure leaves the
        event row in place without venues.
        """
        try:
            try:
                user = backend.auth.get_user()
            except AuthError:
                return error_response("User not authenticated")

            fields = _scalar_fields(data.model_dump())
            fields["created_by"] = user.id
            venue_names = [venue.venue_name for venue in data.venues]

            if not use_firestore():
                event_id = EventRepo.insert_sql(backend.db, fields).id
            else:
                event_id = EventRepo.insert_fs(fields)["id"]
            logger.info(f"Event {event_id} created by {user.id}")

            try:
                if not use_firestore():
                    VenueRepo.insert_many_sql(backend.db, event_id, venue_names)
                else:
                    VenueRepo.insert_many_fs(event_id, venue_names)
            except Exception:
                logger.error(f"Venue insert failed; event {event_id} was kept without venues")
                raise

            return success_response(EventService._fetch(backend, event_id))
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def update_event(backend: BackendClient, event_id: str, data: EventUpdate) -> ActionResponse:
        """Patch the given fields; a venues list replaces all existing venues"""
        try:
            patch = _scalar_fields(data.model_dump(exclude_unset=True))
            if not use_firestore():
                EventRepo.update_sql(backend.db, event_id, patch)
            else:
                EventRepo.update_fs(event_id, patch)

            if data.venues is not None:
                venue_names = [venue.venue_name for venue in data.venues]
                if not use_firestore():
                    VenueRepo.delete_for_event_sql(backend.db, event_id)
                else:
                    VenueRepo.delete_for_event_fs(event_id)

                try:
                    if not use_firestore():
                        VenueRepo.insert_many_sql(backend.db, event_id, venue_names)
                    else:
                        VenueRepo.insert_many_fs(event_id, venue_names)
                except Exception:
                    logger.error(f"Venue insert failed after delete; event {event_id} has no venues")
                    raise

            return success_response(EventService._fetch(backend, event_id))
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def delete_event(backend: BackendClient, event_id: str) -> ActionResponse:
        try:
            if not use_firestore():
                EventRepo.delete_sql(backend.db, event_id)
            else:
                EventRepo.delete_fs(event_id)
            logger.info(f"Event {event_id} deleted")
            return success_response(None)
        except Exception as e:
            return handle_action_error(e)

    @staticmethod
    def delete_event_action(backend: BackendClient, event_id: str) -> RedirectResponse:
        """Delete and send the browser back to the dashboard. Raises on failure."""
        result = EventService.delete_event(backend, event_id)
        if not result.ok:
            raise EventActionError(result.error)
        return RedirectResponse(url="/dashboard", status_code=303)
