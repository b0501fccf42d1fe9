import json

import pytest

from app import create_app
from models import db, User
from services.errors import ProviderError
from services.event_store import EventStore


class FakeChatBackend:
    """Returns queued responses in order and records every call."""

    provider = "fake"
    model = "fake-model"

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    def queue(self, response):
        self.responses.append(response)

    def complete(self, messages, json_mode=True, temperature=0.3):
        self.calls.append({"messages": messages, "json_mode": json_mode, "temperature": temperature})
        if not self.responses:
            raise ProviderError("no response queued")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, (dict, list)):
            return json.dumps(response)
        return response


@pytest.fixture
def chat_backend():
    return FakeChatBackend()


@pytest.fixture
def app(chat_backend):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite://",
        "SECRET_KEY": "test-secret",
        "CHAT_BACKEND": chat_backend,
    })
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def store(app):
    return EventStore()


@pytest.fixture
def make_user(app):
    def _make_user(email="alice@example.com", password="correct-horse", name=None):
        user = User(email=email, name=name)
        user.set_password(password)
        user.regenerate_api_token()
        db.session.add(user)
        db.session.commit()
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def other_user(make_user):
    return make_user(email="bob@example.com")


@pytest.fixture
def auth_headers():
    def _auth_headers(user):
        return {"X-API-Token": user.api_token}

    return _auth_headers
