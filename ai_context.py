from datetime import datetime, timedelta, timezone

DEFAULT_CONTEXT_DAYS = 30


def _as_naive_utc(value):
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_upcoming_events(store, user_id, now=None, days=DEFAULT_CONTEXT_DAYS):
    """Events for the AI prompt: startTime or dueDate within the next `days` days."""
    start = _as_naive_utc(now or datetime.utcnow())
    end = start + timedelta(days=days)
    return store.list_upcoming(user_id, start, end)
