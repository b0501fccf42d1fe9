"""Registration, login and account routes."""
from flask import current_app, jsonify, request

from models import db, User
from services.auth_service import generate_token, get_current_user
from services.validation_service import MIN_PASSWORD_LENGTH, is_valid_email


def register():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password')
    name = data.get('name')

    if not is_valid_email(email):
        return jsonify({'success': False, 'error': 'A valid email is required'}), 400
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        return jsonify({'success': False, 'error': f'Password must be at least {MIN_PASSWORD_LENGTH} characters'}), 400
    if name is not None and not isinstance(name, str):
        return jsonify({'success': False, 'error': 'name must be a string'}), 400

    if User.query.filter_by(email=email).first():
        return jsonify({'success': False, 'error': 'User already exists'}), 400

    user = User(email=email, name=(name or '').strip() or None)
    user.set_password(password)
    user.regenerate_api_token()
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Registered user %s", user.id)

    return jsonify({'success': True, 'data': {'user': user.to_dict(), 'token': generate_token(user.id)}}), 201


def login():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    email = str(data.get('email') or '').strip().lower()
    password = data.get('password')

    if not is_valid_email(email) or not isinstance(password, str):
        return jsonify({'success': False, 'error': 'Email and password are required'}), 400

    user = User.query.filter_by(email=email).first()
    if not user or not user.password_hash or not user.check_password(password):
        return jsonify({'success': False, 'error': 'Invalid credentials'}), 401

    return jsonify({'success': True, 'data': {'user': user.to_dict(), 'token': generate_token(user.id)}})


def current_user_info():
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401
    return jsonify({'success': True, 'data': user.to_dict()})


def regenerate_token():
    user = get_current_user()
    if not user:
        return jsonify({'success': False, 'error': 'Unauthorized'}), 401

    user.regenerate_api_token()
    db.session.commit()
    current_app.logger.info("Regenerated API token for user %s", user.id)
    return jsonify({'success': True, 'data': user.to_dict()})
