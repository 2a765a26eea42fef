"""
Event Routes
Public announcement feed; writes are admin-only
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from models import User
from routes.dependencies import require_admin
from routes.schemas import CreateEventRequest, UpdateEventRequest
from services.event_service import EventService, serialize_event
from utils.responses import success_response

router = APIRouter(prefix="/events", tags=["events"])


@router.get("")
def list_events(db: Session = Depends(get_db)):
    return success_response([serialize_event(e) for e in EventService(db).list_active()])


@router.post("")
def create_event(body: CreateEventRequest, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    event = EventService(db).create_event(body.title, body.description)
    return success_response(serialize_event(event), message="Event created successfully", status_code=201)


@router.put("/{event_id}")
def update_event(event_id: int, body: UpdateEventRequest, admin: User = Depends(require_admin),
                 db: Session = Depends(get_db)):
    event = EventService(db).update_event(event_id, body.title, body.description, body.is_active)
    return success_response(serialize_event(event), message="Event updated successfully")


@router.delete("/{event_id}")
def delete_event(event_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    EventService(db).delete_event(event_id)
    return success_response(message="Event deleted successfully")
