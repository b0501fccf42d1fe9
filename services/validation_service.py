import re
from datetime import date, datetime, time, timezone

from models import DEFAULT_EVENT_TYPE, DEFAULT_SCORE, EVENT_TYPES, SCORE_MAX, SCORE_MIN
from services.errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 8


def parse_bool(value, default=False):
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["1", "true", "yes", "on"]


def parse_score(value):
    """Coerce an urgency/importance value to an int, or None when it is not numeric."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(round(number))


def clamp_score(value, default=DEFAULT_SCORE):
    number = parse_score(value)
    if number is None:
        return default
    return max(SCORE_MIN, min(SCORE_MAX, number))


def normalize_event_type(raw):
    """Default missing types to 'event'; unknown strings pass through unchanged."""
    if not isinstance(raw, str) or not raw.strip():
        return DEFAULT_EVENT_TYPE
    cleaned = raw.strip()
    return cleaned.lower() if cleaned.lower() in EVENT_TYPES else cleaned


def is_known_event_type(raw):
    return isinstance(raw, str) and raw.strip().lower() in EVENT_TYPES


def parse_timestamp(value, default_tz=timezone.utc):
    """
    Parse an ISO 8601 date or datetime into a naive UTC datetime.
    Naive inputs are interpreted in default_tz. Returns None on failure.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    else:
        raw = str(value).strip()
        if not raw:
            return None
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=default_tz)
    try:
        return parsed.astimezone(timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError):
        # Year 1 or 9999 shifted past the datetime range.
        return None


def is_valid_email(value):
    return bool(value) and bool(EMAIL_RE.match(value))


def _require_score(data, key, partial):
    if key not in data:
        return None if partial else DEFAULT_SCORE
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, int) or not (SCORE_MIN <= value <= SCORE_MAX):
        raise ValidationError(f"{key} must be an integer between {SCORE_MIN} and {SCORE_MAX}")
    return value


def _require_timestamp(data, key):
    value = data[key]
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"{key} must be an ISO 8601 datetime")
    return parsed


def parse_event_payload(data, partial=False):
    """
    Validate a JSON body for POST (partial=False) or PATCH (partial=True) /api/events.
    Returns store fields keyed by column name; raises ValidationError.
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    fields = {}
    if "title" in data or not partial:
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title is required")
        fields["title"] = title.strip()

    if "description" in data:
        description = data["description"]
        if description is not None and not isinstance(description, str):
            raise ValidationError("description must be a string")
        fields["description"] = description

    if "type" in data:
        if not isinstance(data["type"], str) or not data["type"].strip():
            raise ValidationError("type must be a non-empty string")
        fields["type"] = normalize_event_type(data["type"])
    elif not partial:
        fields["type"] = DEFAULT_EVENT_TYPE

    for key in ("urgency", "importance"):
        value = _require_score(data, key, partial)
        if value is not None:
            fields[key] = value

    for key, column in (("dueDate", "due_date"), ("startTime", "start_time"), ("endTime", "end_time")):
        if key in data:
            fields[column] = _require_timestamp(data, key)

    if "completed" in data:
        if not isinstance(data["completed"], bool):
            raise ValidationError("completed must be a boolean")
        fields["completed"] = data["completed"]
    return fields
