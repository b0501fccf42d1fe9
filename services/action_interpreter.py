"""
Turns a language-model response into create/update actions and applies them to the
caller's events.

Parsing the envelope is all-or-nothing: a response that is not a JSON object with an
``actions`` list raises InterpretationError before the store is touched. After that,
every action is normalized and applied on its own, in array order. A malformed action
becomes a ``skipped`` result and never stops its siblings. Each applied action commits
by itself, so earlier actions stay applied if a later store call fails.
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from services.errors import InterpretationError
from services.prompt_composer import PROMPT_TZ
from services.validation_service import (
    clamp_score,
    is_known_event_type,
    normalize_event_type,
    parse_bool,
    parse_score,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"

RESULT_CREATED = "created"
RESULT_UPDATED = "updated"
RESULT_SKIPPED = "skipped"

SKIP_UNKNOWN_KIND = "unknown action kind"
SKIP_MISSING_TITLE = "missing title"
SKIP_MISSING_ID = "missing update target id"
SKIP_BAD_DATA = "data must be an object"

# Model-facing key -> store column
DATE_FIELDS = {
    "dueDate": "due_date",
    "startTime": "start_time",
    "endTime": "end_time",
}


def parse_actions(raw_text: Optional[str]) -> List[Any]:
    if not raw_text or not str(raw_text).strip():
        raise InterpretationError("Model returned an empty response")
    try:
        payload = json.loads(raw_text)
    except (TypeError, ValueError) as exc:
        raise InterpretationError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(payload, dict):
        raise InterpretationError("Model response must be a JSON object")
    actions = payload.get("actions")
    if not isinstance(actions, list):
        raise InterpretationError("Model response is missing an 'actions' array")
    return actions


def _date_value(data: Dict[str, Any], key: str):
    """Return (present, raw) for a date field, accepting camelCase or snake_case keys."""
    column = DATE_FIELDS[key]
    if key in data:
        return True, data[key]
    if column in data:
        return True, data[column]
    return False, None


def normalize_create(data: Any, default_tz=PROMPT_TZ) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    if not isinstance(data, dict):
        return None, SKIP_BAD_DATA
    title = data.get("title")
    if not isinstance(title, str) or not title.strip():
        return None, SKIP_MISSING_TITLE

    raw_type = data.get("type")
    if isinstance(raw_type, str) and raw_type.strip() and not is_known_event_type(raw_type):
        logger.info("Passing through unrecognized event type %r", raw_type)

    description = data.get("description")
    fields = {
        "title": title.strip(),
        "description": description.strip() if isinstance(description, str) else None,
        "type": normalize_event_type(raw_type),
        "urgency": clamp_score(data.get("urgency")),
        "importance": clamp_score(data.get("importance")),
    }
    for key, column in DATE_FIELDS.items():
        _, raw = _date_value(data, key)
        fields[column] = parse_timestamp(raw, default_tz=default_tz)
    return fields, None


def normalize_update(action: Dict[str, Any], default_tz=PROMPT_TZ) -> Tuple[Optional[str], Optional[Dict[str, Any]], Optional[str]]:
    data = action.get("data")
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return None, None, SKIP_BAD_DATA

    target_id = action.get("id") or action.get("targetId") or data.get("id")
    if isinstance(target_id, int) and not isinstance(target_id, bool):
        target_id = str(target_id)
    if not isinstance(target_id, str) or not target_id.strip():
        return None, None, SKIP_MISSING_ID

    patch: Dict[str, Any] = {}
    title = data.get("title")
    if isinstance(title, str) and title.strip():
        patch["title"] = title.strip()
    if "description" in data:
        description = data["description"]
        patch["description"] = description.strip() if isinstance(description, str) else None
    if isinstance(data.get("type"), str) and data["type"].strip():
        if not is_known_event_type(data["type"]):
            logger.info("Passing through unrecognized event type %r", data["type"])
        patch["type"] = normalize_event_type(data["type"])
    for key in ("urgency", "importance"):
        if parse_score(data.get(key)) is not None:
            patch[key] = clamp_score(data[key])
    if "completed" in data and data["completed"] is not None:
        patch["completed"] = parse_bool(data["completed"])
    for key, column in DATE_FIELDS.items():
        present, raw = _date_value(data, key)
        if not present:
            continue
        if raw is None:
            patch[column] = None
            continue
        parsed = parse_timestamp(raw, default_tz=default_tz)
        # Unparsable dates leave the stored value untouched.
        if parsed is not None:
            patch[column] = parsed
    return target_id.strip(), patch, None


def _skipped(index: int, reason: str) -> Dict[str, Any]:
    return {"index": index, "kind": RESULT_SKIPPED, "reason": reason}


def apply_actions(store, user_id: str, actions: List[Any], default_tz=PROMPT_TZ) -> List[Dict[str, Any]]:
    results: List[Dict[str, Any]] = []
    for index, action in enumerate(actions):
        kind = action.get("action") if isinstance(action, dict) else None

        if kind == ACTION_CREATE:
            fields, reason = normalize_create(action.get("data"), default_tz=default_tz)
            if reason:
                logger.info("Skipping create action %s for user %s: %s", index, user_id, reason)
                results.append(_skipped(index, reason))
                continue
            event = store.create_event(user_id, fields)
            results.append({"index": index, "kind": RESULT_CREATED, "event": event.to_dict()})
            continue

        if kind == ACTION_UPDATE:
            target_id, patch, reason = normalize_update(action, default_tz=default_tz)
            if reason:
                logger.info("Skipping update action %s for user %s: %s", index, user_id, reason)
                results.append(_skipped(index, reason))
                continue
            if store.find_owned(user_id, target_id) is None:
                # Unresolved targets get no result entry.
                logger.info("Dropping update action %s for user %s: event %s not found", index, user_id, target_id)
                continue
            event = store.update_event(user_id, target_id, patch)
            if event is None:
                logger.info("Dropping update action %s for user %s: event %s disappeared", index, user_id, target_id)
                continue
            results.append({"index": index, "kind": RESULT_UPDATED, "event": event.to_dict()})
            continue

        logger.info("Skipping action %s for user %s: unknown kind %r", index, user_id, kind)
        results.append(_skipped(index, SKIP_UNKNOWN_KIND))
    return results


def summarize(results: List[Dict[str, Any]], total: int) -> Dict[str, int]:
    created = sum(1 for r in results if r["kind"] == RESULT_CREATED)
    updated = sum(1 for r in results if r["kind"] == RESULT_UPDATED)
    skipped = sum(1 for r in results if r["kind"] == RESULT_SKIPPED)
    return {
        "total": total,
        "created": created,
        "updated": updated,
        "skipped": skipped,
        "applied": created + updated,
    }


def interpret_response(store, user_id: str, raw_text: Optional[str], default_tz=PROMPT_TZ) -> Dict[str, Any]:
    """Parse the model response and apply its actions for user_id."""
    actions = parse_actions(raw_text)
    results = apply_actions(store, user_id, actions, default_tz=default_tz)
    return {"results": results, "summary": summarize(results, len(actions))}
