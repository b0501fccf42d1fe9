"""
Builds the messages sent to the language model for natural-language event requests.

Everything here is a pure function of (now, existing events, user prompt): the same
inputs always produce byte-identical text. Example timestamps and the current time are
rendered in a fixed UTC+8 offset so the model sees one consistent clock.
"""
import json
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytz

from models import EVENT_TYPES

PROMPT_TZ = pytz.FixedOffset(8 * 60)
PROMPT_TZ_LABEL = "UTC+08:00"
MONDAY = 0


def to_prompt_tz(value: datetime) -> datetime:
    """Convert to the prompt timezone; naive values are taken as UTC."""
    if value.tzinfo is None:
        value = pytz.UTC.localize(value)
    return value.astimezone(PROMPT_TZ)


def format_prompt_timestamp(value: Optional[datetime]) -> Optional[str]:
    """YYYY-MM-DDTHH:mm:ss+08:00"""
    if value is None:
        return None
    return to_prompt_tz(value).replace(microsecond=0).isoformat()


def format_localized_now(now: datetime) -> str:
    local = to_prompt_tz(now)
    return local.strftime("%A, %B %d, %Y at %I:%M %p") + f" ({PROMPT_TZ_LABEL})"


def compute_anchor_times(now: datetime) -> Tuple[datetime, datetime]:
    """Return (tomorrow at 17:00, next Monday at 14:00), both strictly after now."""
    local = to_prompt_tz(now)
    tomorrow_5pm = (local + timedelta(days=1)).replace(hour=17, minute=0, second=0, microsecond=0)
    # Always 1-7 days ahead, so a Monday rolls to the following week.
    days_ahead = (MONDAY - local.weekday()) % 7 or 7
    next_monday_2pm = (local + timedelta(days=days_ahead)).replace(hour=14, minute=0, second=0, microsecond=0)
    return tomorrow_5pm, next_monday_2pm


def _event_field(event: Any, attr: str, key: str):
    if isinstance(event, dict):
        return event.get(key, event.get(attr))
    return getattr(event, attr, None)


def serialize_upcoming_events(events: Iterable[Any]) -> str:
    snapshot: List[Dict[str, Any]] = []
    for event in events:
        start = _event_field(event, "start_time", "startTime")
        due = _event_field(event, "due_date", "dueDate")
        snapshot.append({
            "id": _event_field(event, "id", "id"),
            "title": _event_field(event, "title", "title"),
            "startTime": format_prompt_timestamp(start) if isinstance(start, datetime) else start,
            "dueDate": format_prompt_timestamp(due) if isinstance(due, datetime) else due,
            "type": _event_field(event, "type", "type"),
        })
    return json.dumps(snapshot, ensure_ascii=False, indent=2, sort_keys=True)


def build_system_prompt(now: datetime, events: Iterable[Any]) -> str:
    tomorrow_5pm, next_monday_2pm = compute_anchor_times(now)
    tomorrow_iso = format_prompt_timestamp(tomorrow_5pm)
    monday_iso = format_prompt_timestamp(next_monday_2pm)
    types = ", ".join(f'"{t}"' for t in EVENT_TYPES)
    return f"""You are a scheduling assistant that turns natural-language requests into create/update actions on the user's events.

Return ONLY a JSON object with this exact shape, no additional text:
{{
  "actions": [
    {{"action": "create", "data": {{...event fields...}}}},
    {{"action": "update", "id": "<existing event id>", "data": {{...only the fields to change...}}}}
  ]
}}

Event fields:
- title: string (required for create)
- description: string (optional)
- type: one of {types} (default: "event")
- urgency: integer 1-5, where 5 is most urgent (default: 3). How time-sensitive is it?
- importance: integer 1-5, where 5 is most important (default: 3). How much does it matter to the user's goals?
- dueDate: ISO 8601 datetime, for deadlines (homework, tasks, reminders)
- startTime / endTime: ISO 8601 datetimes, for scheduled intervals (events, meetings). Only give endTime together with startTime.
- completed: boolean (updates only)

Rules:
- Write every datetime as YYYY-MM-DDTHH:mm:ss+08:00 ({PROMPT_TZ_LABEL}).
- Use "update" only when the request clearly refers to one of the existing events below, and copy its id exactly. Otherwise use "create".
- A single request may produce several actions. If nothing should change, return {{"actions": []}}.

Examples:
"Submit homework by tomorrow 5pm" -> {{"action": "create", "data": {{"title": "Submit homework", "type": "homework", "urgency": 5, "importance": 4, "dueDate": "{tomorrow_iso}"}}}}
"Team meeting next Monday at 2pm" -> {{"action": "create", "data": {{"title": "Team meeting", "type": "meeting", "urgency": 3, "importance": 3, "startTime": "{monday_iso}"}}}}
"Plan vacation for next month" -> {{"action": "create", "data": {{"title": "Plan vacation", "type": "task", "urgency": 2, "importance": 3}}}}
"Mark the team meeting as done" -> {{"action": "update", "id": "<id of the team meeting>", "data": {{"completed": true}}}}

The user's upcoming events:
{serialize_upcoming_events(events)}"""


def build_user_message(prompt: str, now: datetime) -> str:
    return f"{prompt.strip()}\n\nCurrent time: {format_localized_now(now)}"


def compose_messages(now: datetime, events: Iterable[Any], prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": build_system_prompt(now, events)},
        {"role": "user", "content": build_user_message(prompt, now)},
    ]
