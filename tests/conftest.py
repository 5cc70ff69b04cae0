import pytest

from config import TestingConfig
from jobbooster import create_app
from jobbooster.extensions import db
from jobbooster.logging_setup import teardown_logging
from jobbooster.models import User
from jobbooster.services.openai_service import Completion


class FakeCompletionClient:
    """Stands in for the OpenAI-backed client; replies are queued by the test."""

    model = "fake-model"

    def __init__(self):
        self.replies = []
        self.chunks = []
        self.calls = []

    def complete(self, messages, temperature=0.7, max_tokens=None):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        reply = self.replies.pop(0) if self.replies else "{}"
        if isinstance(reply, Exception):
            raise reply
        usage = {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}
        return Completion(content=reply, usage=usage, model=self.model, duration_ms=5)

    def stream(self, messages, temperature=0.7, max_tokens=None):
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if isinstance(self.chunks, Exception):
            raise self.chunks
        if callable(self.chunks):
            return self.chunks()
        return iter(list(self.chunks))


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    teardown_logging()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fake_llm(app):
    fake = FakeCompletionClient()
    app.extensions["completion_client"] = fake
    return fake


def _register(client, email="jane@example.com", password="s3cret-pass", name="Jane Doe"):
    response = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
    assert response.status_code == 201, response.get_json()
    return response.get_json()["access_token"]


@pytest.fixture
def register(client):
    """Sign up an account through the API and return its access token."""
    return lambda **kwargs: _register(client, **kwargs)


@pytest.fixture
def auth(client):
    """(headers, user_id) for a freshly registered account."""
    token = _register(client)
    user = User.query.filter_by(email="jane@example.com").first()
    return {"Authorization": f"Bearer {token}"}, user.id
