"""SQLAlchemy-backed event store. Every operation is scoped by the owning user id."""
from typing import Any, Dict, List, Optional

from models import db, Event, DEFAULT_EVENT_TYPE
from services.validation_service import clamp_score

EVENT_FIELDS = (
    "title",
    "description",
    "type",
    "urgency",
    "importance",
    "due_date",
    "start_time",
    "end_time",
    "completed",
)


def _apply_interval_rules(event: Event) -> None:
    """end_time is only kept alongside a start_time and never before it."""
    if event.end_time is None:
        return
    if event.start_time is None or event.end_time < event.start_time:
        event.end_time = None


class EventStore:
    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _owned_query(self, user_id: str):
        return self.session.query(Event).filter(Event.user_id == user_id)

    def list_events(
        self,
        user_id: str,
        completed: Optional[bool] = None,
        event_type: Optional[str] = None,
        start=None,
        end=None,
    ) -> List[Event]:
        query = self._owned_query(user_id)
        if completed is not None:
            query = query.filter(Event.completed.is_(bool(completed)))
        if event_type:
            query = query.filter(Event.type == event_type)
        if start is not None or end is not None:
            query = query.filter(db.or_(
                self._window_clause(Event.start_time, start, end),
                self._window_clause(Event.due_date, start, end),
            ))
        return query.order_by(
            Event.due_date.is_(None),
            Event.due_date.asc(),
            Event.created_at.desc(),
        ).all()

    @staticmethod
    def _window_clause(column, start, end):
        clauses = [column.isnot(None)]
        if start is not None:
            clauses.append(column >= start)
        if end is not None:
            clauses.append(column <= end)
        return db.and_(*clauses)

    def list_upcoming(self, user_id: str, start, end) -> List[Event]:
        """Events whose start_time or due_date falls inside [start, end]."""
        events = self.list_events(user_id, start=start, end=end)
        return sorted(events, key=lambda e: (e.start_time or e.due_date, e.id))

    def find_owned(self, user_id: str, event_id: str) -> Optional[Event]:
        if not event_id:
            return None
        return self._owned_query(user_id).filter(Event.id == str(event_id)).first()

    def create_event(self, user_id: str, fields: Dict[str, Any]) -> Event:
        event = Event(
            user_id=user_id,
            title=str(fields["title"]).strip(),
            description=(fields.get("description") or "").strip() or None,
            type=fields.get("type") or DEFAULT_EVENT_TYPE,
            urgency=clamp_score(fields.get("urgency")),
            importance=clamp_score(fields.get("importance")),
            due_date=fields.get("due_date"),
            start_time=fields.get("start_time"),
            end_time=fields.get("end_time"),
            completed=bool(fields.get("completed", False)),
        )
        _apply_interval_rules(event)
        self.session.add(event)
        self.session.commit()
        return event

    def update_event(self, user_id: str, event_id: str, patch: Dict[str, Any]) -> Optional[Event]:
        """Apply only the supplied fields. Returns None when the caller does not own the event."""
        event = self.find_owned(user_id, event_id)
        if not event:
            return None
        for key, value in patch.items():
            if key not in EVENT_FIELDS:
                continue
            if key in ("urgency", "importance"):
                value = clamp_score(value, default=getattr(event, key))
            elif key == "title":
                value = str(value).strip()
                if not value:
                    continue
            elif key == "description":
                value = (value or "").strip() or None
            elif key == "completed":
                value = bool(value)
            setattr(event, key, value)
        _apply_interval_rules(event)
        self.session.commit()
        return event

    def delete_event(self, user_id: str, event_id: str) -> bool:
        event = self.find_owned(user_id, event_id)
        if not event:
            return False
        self.session.delete(event)
        self.session.commit()
        return True
