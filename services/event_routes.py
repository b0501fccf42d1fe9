"""Event CRUD routes. Every lookup is scoped to the authenticated user."""
from flask import current_app, jsonify, request

from services.auth_service import get_current_user
from services.errors import ValidationError
from services.validation_service import parse_bool, parse_event_payload, parse_timestamp


def _store():
    return current_app.extensions['event_store']


def _parse_window(args):
    start_raw = args.get('start')
    end_raw = args.get('end')
    start = parse_timestamp(start_raw) if start_raw else None
    end = parse_timestamp(end_raw) if end_raw else None
    if start_raw and start is None:
        raise ValidationError('Invalid start date')
    if end_raw and end is None:
        raise ValidationError('Invalid end date')
    if start and end and end < start:
        raise ValidationError('end must be on/after start')
    return start, end


def list_or_create_events():
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    if request.method == 'POST':
        try:
            fields = parse_event_payload(request.get_json(silent=True), partial=False)
        except ValidationError as exc:
            return jsonify({'success': False, 'error': exc.public_message}), 400
        event = _store().create_event(user.id, fields)
        return jsonify({'success': True, 'data': event.to_dict()}), 201

    completed_raw = request.args.get('completed')
    try:
        start, end = _parse_window(request.args)
    except ValidationError as exc:
        return jsonify({'success': False, 'error': exc.public_message}), 400

    events = _store().list_events(
        user.id,
        completed=parse_bool(completed_raw) if completed_raw is not None else None,
        event_type=(request.args.get('type') or '').strip() or None,
        start=start,
        end=end,
    )
    return jsonify({'success': True, 'data': [e.to_dict() for e in events]})


def event_detail(event_id):
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    store = _store()
    event = store.find_owned(user.id, event_id)
    if not event:
        return jsonify({'success': False, 'error': 'Event not found'}), 404

    if request.method == 'GET':
        return jsonify({'success': True, 'data': event.to_dict()})

    if request.method == 'DELETE':
        store.delete_event(user.id, event.id)
        return jsonify({'success': True, 'data': {'message': 'Event deleted successfully'}})

    try:
        patch = parse_event_payload(request.get_json(silent=True), partial=True)
    except ValidationError as exc:
        return jsonify({'success': False, 'error': exc.public_message}), 400
    if not patch:
        return jsonify({'success': True, 'data': event.to_dict()})

    event = store.update_event(user.id, event.id, patch)
    if not event:
        return jsonify({'success': False, 'error': 'Event not found'}), 404
    return jsonify({'success': True, 'data': event.to_dict()})
