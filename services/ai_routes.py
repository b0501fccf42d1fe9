"""Natural-language event routes."""
from flask import current_app, jsonify, request

from ai_service import run_ai_actions
from services.ai_gateway import describe_backend
from services.auth_service import get_current_user
from services.errors import InterpretationError, ProviderError, ValidationError


def ai_create_event():
    """Create or update events from a natural-language prompt via the configured model."""
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    try:
        outcome = run_ai_actions(
            user.id,
            data.get('prompt'),
            store=current_app.extensions['event_store'],
            chat_backend=current_app.extensions['chat_backend'],
            context_days=int(current_app.config.get('AI_CONTEXT_DAYS') or 30),
        )
    except ValidationError as exc:
        return jsonify({'success': False, 'error': exc.public_message}), 400
    except (ProviderError, InterpretationError) as exc:
        current_app.logger.warning("AI create failed for user %s: %s", user.id, exc)
        return jsonify({'success': False, 'error': exc.public_message}), 500

    return jsonify({
        'success': True,
        'data': outcome['results'],
        'summary': outcome['summary'],
        'message': outcome['message'],
    }), 201


def ai_status():
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401
    return jsonify({'success': True, 'data': describe_backend(current_app.extensions['chat_backend'])})
