"""Announcements published by admins"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from models import Event
from utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def serialize_event(event: Event) -> Dict[str, Any]:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "isActive": event.is_active,
        "createdAt": event.created_at,
        "updatedAt": event.updated_at,
    }


class EventService:
    def __init__(self, db: Session):
        self.db = db

    def list_active(self) -> List[Event]:
        return (
            self.db.query(Event)
            .filter(Event.is_active.is_(True))
            .order_by(Event.created_at.desc(), Event.id.desc())
            .all()
        )

    def create_event(self, title: Optional[str], description: Optional[str]) -> Event:
        title = (title or "").strip()
        if not title or not description:
            raise ValidationError("Title and description are required")
        event = Event(title=title, description=description, is_active=True)
        self.db.add(event)
        self.db.commit()
        logger.info(f"📣 Event {event.id} created")
        return event

    def update_event(self, event_id: int, title: Optional[str] = None, description: Optional[str] = None,
                     is_active: Optional[bool] = None) -> Event:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        if title is not None:
            event.title = title.strip()
        if description is not None:
            event.description = description
        if is_active is not None:
            event.is_active = is_active
        self.db.commit()
        return event

    def delete_event(self, event_id: int) -> None:
        event = self.db.get(Event, event_id)
        if event is None:
            raise NotFoundError("Event not found")
        self.db.delete(event)
        self.db.commit()
        logger.info(f"🗑️ Event {event_id} deleted")
