import secrets
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()

EVENT_TYPES = ('event', 'homework', 'meeting', 'task', 'reminder', 'other')
DEFAULT_EVENT_TYPE = 'event'
SCORE_MIN = 1
SCORE_MAX = 5
DEFAULT_SCORE = 3
# Center of the 0..10 priority-matrix axes.
QUADRANT_MIDPOINT = 5


def generate_id():
    return secrets.token_hex(16)


def generate_api_token():
    return secrets.token_hex(32)


def _iso_utc(value):
    """Render a naive UTC datetime the way the API returns timestamps."""
    if not value:
        return None
    return value.replace(microsecond=0).isoformat() + 'Z'


class User(UserMixin, db.Model):
    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(120), nullable=True)
    password_hash = db.Column(db.String(255), nullable=False)
    api_token = db.Column(db.String(64), unique=True, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    events = db.relationship('Event', backref='owner', lazy=True, cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def regenerate_api_token(self):
        self.api_token = generate_api_token()
        return self.api_token

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'apiToken': self.api_token,
            'createdAt': _iso_utc(self.created_at),
            'updatedAt': _iso_utc(self.updated_at),
        }


class Event(db.Model):
    """
    Schedulable unit owned by a single user.
    due_date carries deadline semantics; start_time/end_time describe a scheduled interval.
    All timestamps are stored as naive UTC.
    """
    id = db.Column(db.String(32), primary_key=True, default=generate_id)
    user_id = db.Column(db.String(32), db.ForeignKey('user.id'), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(50), nullable=False, default=DEFAULT_EVENT_TYPE)
    urgency = db.Column(db.Integer, nullable=False, default=DEFAULT_SCORE)  # 1-5
    importance = db.Column(db.Integer, nullable=False, default=DEFAULT_SCORE)  # 1-5
    due_date = db.Column(db.DateTime, nullable=True)
    start_time = db.Column(db.DateTime, nullable=True)
    end_time = db.Column(db.DateTime, nullable=True)
    completed = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def quadrant(self):
        """Priority-matrix quadrant: do / schedule / delegate / eliminate."""
        urgent = (self.urgency or DEFAULT_SCORE) >= QUADRANT_MIDPOINT
        important = (self.importance or DEFAULT_SCORE) >= QUADRANT_MIDPOINT
        if urgent and important:
            return 'do'
        if important:
            return 'schedule'
        if urgent:
            return 'delegate'
        return 'eliminate'

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'urgency': self.urgency,
            'importance': self.importance,
            'dueDate': _iso_utc(self.due_date),
            'startTime': _iso_utc(self.start_time),
            'endTime': _iso_utc(self.end_time),
            'completed': bool(self.completed),
            'quadrant': self.quadrant(),
            'createdAt': _iso_utc(self.created_at),
            'updatedAt': _iso_utc(self.updated_at),
            'userId': self.user_id,
        }
