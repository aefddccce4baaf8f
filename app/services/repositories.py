"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Every method either returns rows or raises BackendError with a classified
ErrorKind; raw driver exceptions never leave this module.
"""

from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from google.api_core import exceptions as google_exceptions
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.models import Event, Venue
from app.services.firebase_client import get_firestore_client
from app.utils.errors import BackendError, ErrorKind, backend_error_from


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@contextmanager
def sql_errors(db: Session):
    """Roll back and re-raise SQLAlchemy failures as BackendError"""
    try:
        yield
    except SQLAlchemyError as e:
        db.rollback()
        raise backend_error_from(e) from e


@contextmanager
def firestore_errors():
    try:
        yield
    except google_exceptions.AlreadyExists as e:
        raise BackendError(str(e.message), ErrorKind.CONFLICT) from e
    except google_exceptions.NotFound as e:
        raise BackendError(str(e.message), ErrorKind.NOT_FOUND) from e
    except google_exceptions.GoogleAPICallError as e:
        raise backend_error_from(e) from e


def _not_found() -> BackendError:
    return BackendError("Event not found", ErrorKind.NOT_FOUND)


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def list_sql(db: Session, search_term: Optional[str] = None, sport_type: Optional[str] = None) -> List[Event]:
        with sql_errors(db):
            query = db.query(Event).options(selectinload(Event.venues))
            if search_term:
                query = query.filter(Event.name.icontains(search_term, autoescape=True))
            if sport_type:
                query = query.filter(Event.sport_type == sport_type)
            return query.order_by(Event.date.asc()).all()

    @staticmethod
    def get_sql(db: Session, event_id: str) -> Event:
        with sql_errors(db):
            event = db.query(Event).options(selectinload(Event.venues)).filter(Event.id == event_id).first()
        if event is None:
            raise _not_found()
        return event

    @staticmethod
    def insert_sql(db: Session, fields: Dict[str, Any]) -> Event:
        event = Event(**fields)
        with sql_errors(db):
            db.add(event)
            db.commit()
            db.refresh(event)
        return event

    @staticmethod
    def update_sql(db: Session, event_id: str, patch: Dict[str, Any]) -> None:
        if not patch:
            return
        with sql_errors(db):
            db.query(Event).filter(Event.id == event_id).update(
                {**patch, "updated_at": _utcnow()}, synchronize_session=False
            )
            db.commit()

    @staticmethod
    def delete_sql(db: Session, event_id: str) -> None:
        # event_venues rows go with the ON DELETE CASCADE foreign key
        with sql_errors(db):
            db.query(Event).filter(Event.id == event_id).delete(synchronize_session=False)
            db.commit()

    # Firestore shape: collection "events/{id}" with a "venues" sub-collection
    @staticmethod
    def _venues_fs(event_ref) -> List[Dict[str, Any]]:
        return [d.to_dict() for d in event_ref.collection("venues").order_by("created_at").get()]

    @staticmethod
    def list_fs(search_term: Optional[str] = None, sport_type: Optional[str] = None) -> List[Dict[str, Any]]:
        fs = get_firestore_client()
        with firestore_errors():
            query = fs.collection("events")
            if sport_type:
                query = query.where("sport_type", "==", sport_type)
            results: List[Dict[str, Any]] = []
            for doc in query.get():
                item = doc.to_dict()
                # Firestore has no substring operator
                if search_term and search_term.lower() not in (item.get("name") or "").lower():
                    continue
                item["venues"] = EventRepo._venues_fs(doc.reference)
                results.append(item)
        return sorted(results, key=lambda e: e["date"])

    @staticmethod
    def get_fs(event_id: str) -> Dict[str, Any]:
        fs = get_firestore_client()
        with firestore_errors():
            ref = fs.collection("events").document(event_id)
            doc = ref.get()
            if not doc.exists:
                raise _not_found()
            item = doc.to_dict()
            item["venues"] = EventRepo._venues_fs(ref)
        return item

    @staticmethod
    def insert_fs(fields: Dict[str, Any]) -> Dict[str, Any]:
        fs = get_firestore_client()
        now = _utcnow()
        data = {**fields, "id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        with firestore_errors():
            fs.collection("events").document(data["id"]).create(data)
        return data

    @staticmethod
    def update_fs(event_id: str, patch: Dict[str, Any]) -> None:
        if not patch:
            return
        fs = get_firestore_client()
        with firestore_errors():
            fs.collection("events").document(event_id).update({**patch, "updated_at": _utcnow()})

    @staticmethod
    def delete_fs(event_id: str) -> None:
        fs = get_firestore_client()
        with firestore_errors():
            # Firestore does not cascade into sub-collections
            VenueRepo.delete_for_event_fs(event_id)
            fs.collection("events").document(event_id).delete()


# -------- Venue repository --------

class VenueRepo:
    @staticmethod
    def insert_many_sql(db: Session, event_id: str, venue_names: Iterable[str]) -> None:
        with sql_errors(db):
            db.add_all([Venue(event_id=event_id, venue_name=name) for name in venue_names])
            db.commit()

    @staticmethod
    def delete_for_event_sql(db: Session, event_id: str) -> None:
        with sql_errors(db):
            db.query(Venue).filter(Venue.event_id == event_id).delete(synchronize_session=False)
            db.commit()

    @staticmethod
    def insert_many_fs(event_id: str, venue_names: Iterable[str]) -> None:
        fs = get_firestore_client()
        with firestore_errors():
            event_ref = fs.collection("events").document(event_id)
            if not event_ref.get().exists:
                raise BackendError(f"Event {event_id} does not exist", ErrorKind.MISSING_REFERENCE)
            batch = fs.batch()
            for name in venue_names:
                venue_id = str(uuid.uuid4())
                batch.set(event_ref.collection("venues").document(venue_id), {
                    "id": venue_id,
                    "event_id": event_id,
                    "venue_name": name,
                    "created_at": _utcnow(),
                })
            batch.commit()

    @staticmethod
    def delete_for_event_fs(event_id: str) -> None:
        fs = get_firestore_client()
        with firestore_errors():
            docs = fs.collection("events").document(event_id).collection("venues").get()
            batch = fs.batch()
            for d in docs:
                batch.delete(d.reference)
            batch.commit()
