"""Request authentication: signed bearer tokens or per-user API tokens."""
from flask import current_app, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from models import db, User

TOKEN_SALT = "scheduler-auth-token"
DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 60 * 60  # 7 days in seconds


def _serializer():
    return URLSafeTimedSerializer(current_app.config['SECRET_KEY'], salt=TOKEN_SALT)


def generate_token(user_id):
    return _serializer().dumps({'user_id': user_id})


def verify_token(token):
    """Return the user id carried by a valid, unexpired token, else None."""
    max_age = int(current_app.config.get('AUTH_TOKEN_MAX_AGE') or DEFAULT_TOKEN_MAX_AGE)
    try:
        payload = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        current_app.logger.info("Rejected expired auth token")
        return None
    except BadSignature:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get('user_id')


def get_current_user():
    """Resolve the caller from an Authorization bearer token, else an X-API-Token header."""
    auth_header = request.headers.get('Authorization') or ''
    if auth_header.startswith('Bearer '):
        user_id = verify_token(auth_header[len('Bearer '):].strip())
        if user_id:
            user = db.session.get(User, user_id)
            if user:
                return user

    api_token = (request.headers.get('X-API-Token') or '').strip()
    if api_token:
        return User.query.filter_by(api_token=api_token).first()
    return None
