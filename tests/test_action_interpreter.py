import json
from datetime import datetime

import pytest

from models import db, Event
from services.action_interpreter import (
    SKIP_MISSING_ID,
    SKIP_MISSING_TITLE,
    SKIP_UNKNOWN_KIND,
    interpret_response,
    normalize_create,
    normalize_update,
    parse_actions,
)
from services.errors import InterpretationError


class ReadOnlyStore:
    """Fails the test if the interpreter tries to write."""

    def __init__(self):
        self.calls = []

    def create_event(self, user_id, fields):
        self.calls.append("create_event")
        raise AssertionError("store must not be written")

    def find_owned(self, user_id, event_id):
        self.calls.append("find_owned")
        return None

    def update_event(self, user_id, event_id, patch):
        self.calls.append("update_event")
        raise AssertionError("store must not be written")


def _response(*actions):
    return json.dumps({"actions": list(actions)})


@pytest.mark.parametrize("raw", [
    "",
    "not json at all",
    "Sure! Here you go: {\"actions\": []}",
    "[]",
    "{\"action\": \"create\"}",
    "{\"actions\": {\"action\": \"create\"}}",
])
def test_parse_actions_rejects_malformed_envelopes(raw):
    with pytest.raises(InterpretationError):
        parse_actions(raw)


def test_malformed_response_touches_no_store():
    store = ReadOnlyStore()
    with pytest.raises(InterpretationError):
        interpret_response(store, "user-1", "{\"actions\": [")
    assert store.calls == []


def test_create_clamps_scores_into_range(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "Ship release", "urgency": 9, "importance": -2}},
    ))
    [result] = outcome["results"]
    assert result["kind"] == "created"
    assert result["event"]["urgency"] == 5
    assert result["event"]["importance"] == 1

    stored = db.session.get(Event, result["event"]["id"])
    assert (stored.urgency, stored.importance) == (5, 1)


def test_meeting_tomorrow_creates_one_event_with_defaults(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "Meeting with John", "startTime": "2026-10-18T14:00:00+08:00"}},
    ))
    assert outcome["summary"] == {"total": 1, "created": 1, "updated": 0, "skipped": 0, "applied": 1}
    [result] = outcome["results"]
    event = result["event"]
    assert result["kind"] == "created"
    assert event["startTime"] == "2026-10-18T06:00:00Z"
    assert (event["urgency"], event["importance"], event["type"]) == (3, 3, "event")
    assert event["userId"] == user.id


def test_non_numeric_scores_fall_back_to_default():
    fields, reason = normalize_create({"title": "Read", "urgency": "very", "importance": None})
    assert reason is None
    assert (fields["urgency"], fields["importance"]) == (3, 3)


def test_numeric_strings_are_accepted_for_scores():
    fields, _ = normalize_create({"title": "Read", "urgency": "4", "importance": 4.6})
    assert (fields["urgency"], fields["importance"]) == (4, 5)


def test_unparsable_dates_become_null_without_failing_the_batch(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "Essay", "type": "homework", "dueDate": "next friday-ish"}},
        {"action": "create", "data": {"title": "Call mom", "dueDate": "2026-10-20"}},
    ))
    first, second = outcome["results"]
    assert first["kind"] == "created" and first["event"]["dueDate"] is None
    assert second["event"]["dueDate"] == "2026-10-19T16:00:00Z"


def test_unknown_type_passes_through():
    fields, _ = normalize_create({"title": "Workshop", "type": "Workshop"})
    assert fields["type"] == "Workshop"
    fields, _ = normalize_create({"title": "Standup", "type": "MEETING"})
    assert fields["type"] == "meeting"
    fields, _ = normalize_create({"title": "Something", "type": 7})
    assert fields["type"] == "event"


def test_end_time_without_start_time_is_dropped(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "Floating", "endTime": "2026-10-20T10:00:00+08:00"}},
    ))
    assert outcome["results"][0]["event"]["endTime"] is None


def test_create_without_title_is_skipped(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"description": "no title here"}},
        {"action": "create"},
    ))
    assert [r["kind"] for r in outcome["results"]] == ["skipped", "skipped"]
    assert outcome["results"][0]["reason"] == SKIP_MISSING_TITLE
    assert Event.query.count() == 0


def test_bogus_action_kind_is_skipped_and_counted(store, user):
    outcome = interpret_response(store, user.id, _response({"action": "bogus"}))
    assert outcome["results"] == [{"index": 0, "kind": "skipped", "reason": SKIP_UNKNOWN_KIND}]
    assert outcome["summary"]["applied"] == 0


def test_non_object_actions_are_skipped(store, user):
    outcome = interpret_response(store, user.id, _response("create", 42, None))
    assert [r["reason"] for r in outcome["results"]] == [SKIP_UNKNOWN_KIND] * 3


def test_update_applies_only_supplied_fields(store, user):
    event = store.create_event(user.id, {"title": "Team meeting", "type": "meeting", "urgency": 2, "importance": 4})
    outcome = interpret_response(store, user.id, _response(
        {"action": "update", "id": event.id, "data": {"urgency": 8, "completed": True}},
    ))
    [result] = outcome["results"]
    assert result["kind"] == "updated"
    assert result["event"]["urgency"] == 5
    assert result["event"]["completed"] is True
    assert result["event"]["importance"] == 4
    assert result["event"]["title"] == "Team meeting"


def test_update_of_another_users_event_is_dropped_silently(store, user, other_user):
    theirs = store.create_event(other_user.id, {"title": "Bob's dentist", "urgency": 2})
    outcome = interpret_response(store, user.id, _response(
        {"action": "update", "id": theirs.id, "data": {"title": "Hijacked", "urgency": 5}},
    ))
    assert outcome["results"] == []
    assert outcome["summary"]["applied"] == 0

    db.session.expire_all()
    untouched = db.session.get(Event, theirs.id)
    assert (untouched.title, untouched.urgency) == ("Bob's dentist", 2)


def test_update_of_unknown_id_is_dropped(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "update", "id": "does-not-exist", "data": {"title": "x"}},
    ))
    assert outcome["results"] == []


def test_update_without_id_is_skipped(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "update", "data": {"title": "x"}},
        {"action": "update", "id": "   ", "data": {"title": "x"}},
    ))
    assert [r["reason"] for r in outcome["results"]] == [SKIP_MISSING_ID, SKIP_MISSING_ID]


def test_update_keeps_stored_date_when_new_value_is_unparsable():
    target_id, patch, reason = normalize_update({
        "action": "update",
        "id": "evt-1",
        "data": {"dueDate": "someday", "startTime": None, "endTime": "2026-10-20T15:00:00+08:00"},
    })
    assert reason is None
    assert target_id == "evt-1"
    assert "due_date" not in patch
    assert patch["start_time"] is None
    assert patch["end_time"] == datetime(2026, 10, 20, 7, 0)


def test_batch_is_applied_in_order_with_per_action_isolation(store, user):
    existing = store.create_event(user.id, {"title": "Gym"})
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "Buy milk", "type": "task"}},
        {"action": "delete", "id": existing.id},
        {"action": "update", "id": existing.id, "data": {"title": "Gym session"}},
        {"action": "create", "data": {}},
    ))
    assert [(r["index"], r["kind"]) for r in outcome["results"]] == [
        (0, "created"),
        (1, "skipped"),
        (2, "updated"),
        (3, "skipped"),
    ]
    assert outcome["summary"] == {"total": 4, "created": 1, "updated": 1, "skipped": 2, "applied": 2}
    assert Event.query.filter_by(user_id=user.id).count() == 2


def test_out_of_range_date_becomes_null_without_aborting_batch(store, user):
    outcome = interpret_response(store, user.id, _response(
        {"action": "create", "data": {"title": "First"}},
        {"action": "create", "data": {"title": "Ancient", "dueDate": "0001-01-01T00:00:00"}},
    ))

    assert [r["kind"] for r in outcome["results"]] == ["created", "created"]
    assert outcome["results"][1]["event"]["dueDate"] is None
    assert Event.query.filter_by(user_id=user.id).count() == 2
