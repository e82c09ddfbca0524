"""Repository for Event database operations."""

import logging
from typing import List, Optional
from sqlalchemy.orm import Session

from pairplan.models.event import Event
from pairplan.database.models import EventDB, enum_to_value, to_db_datetime, utcnow_naive

logger = logging.getLogger(__name__)


class EventRepository:
    """Repository for Event database operations."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, event: Event) -> Event:
        """Create a new event."""
        try:
            event_db = EventDB.from_pydantic(event)
            self.db.add(event_db)
            self.db.commit()
            self.db.refresh(event_db)
            logger.debug(f"Created event {event.id}: {event.title[:50]}")
            return event_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create event {event.id}: {type(e).__name__}: {str(e)}")
            raise

    def get(self, event_id: str) -> Optional[Event]:
        """Get event by ID."""
        event_db = self.db.query(EventDB).filter(EventDB.id == event_id).first()
        return event_db.to_pydantic() if event_db else None

    def get_all(self) -> List[Event]:
        """Get all stored events (definitions, not occurrences) ordered by date."""
        events_db = self.db.query(EventDB).order_by(EventDB.date).all()
        return [event_db.to_pydantic() for event_db in events_db]

    def update(self, event: Event) -> Event:
        """Update an existing event."""
        event_db = self.db.query(EventDB).filter(EventDB.id == event.id).first()
        if not event_db:
            raise ValueError(f"Event {event.id} not found")

        event_db.title = event.title
        event_db.description = event.description
        event_db.date = to_db_datetime(event.date)
        event_db.start_time = event.start_time
        event_db.end_time = event.end_time
        event_db.location = event.location
        event_db.emoji = event.emoji
        event_db.period = event.period
        event_db.recurrence = enum_to_value(event.recurrence)
        event_db.recurrence_end = to_db_datetime(event.recurrence_end)
        event_db.recurrence_rule = event.recurrence_rule
        event_db.timezone = event.timezone
        event_db.updated_at = utcnow_naive()

        try:
            self.db.commit()
            self.db.refresh(event_db)
            logger.debug(f"Updated event {event.id}: {event.title[:50]}")
            return event_db.to_pydantic()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update event {event.id}: {type(e).__name__}: {str(e)}")
            raise

    def delete(self, event_id: str) -> bool:
        """Delete an event by ID. Its recurrence rule goes with it."""
        event_db = self.db.query(EventDB).filter(EventDB.id == event_id).first()
        if not event_db:
            return False
        try:
            self.db.delete(event_db)
            self.db.commit()
            logger.debug(f"Deleted event {event_id}")
            return True
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete event {event_id}: {type(e).__name__}: {str(e)}")
            raise
