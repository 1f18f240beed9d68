import pytest
import jwt
from unittest.mock import AsyncMock

from config import Config


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep tests off the real knowledge base and auth secret."""
    monkeypatch.setattr(Config, "KNOWLEDGE_VECTOR_STORE_ID", "")
    monkeypatch.setattr(Config, "KNOWLEDGE_API_KEY", "")
    monkeypatch.setattr(Config, "JWT_SECRET", "")
    monkeypatch.setattr(Config, "MAX_HISTORY_MESSAGES", 30)
    monkeypatch.setattr(Config, "STREAM_TURN_TIMEOUT", 120.0)


@pytest.fixture
def mock_ollama_client():
    """Reusable mock for ollama.AsyncClient, capable of streaming and non-streaming."""
    client = AsyncMock()

    async def chat_side_effect(model, messages, stream=False, **kwargs):
        if stream:
            async def token_stream():
                yield {"message": {"content": "Hello"}, "done": False}
                yield {"message": {"content": " world"}, "done": False}
                yield {"message": {"content": ""}, "done": True}
            return token_stream()
        else:
            return {"message": {"content": "non-streamed response"}}

    client.chat.side_effect = chat_side_effect
    return client


@pytest.fixture
def storage(tmp_path):
    """Fresh SQLite storage per test."""
    from utils.storage import Storage
    return Storage(str(tmp_path / "coach.db"))


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(Config, "JWT_SECRET", "test-secret")
    return "test-secret"


@pytest.fixture
def make_token(jwt_secret):
    """Build signed bearer tokens for a given user id."""
    def _make(user_id="user-1", **claims):
        return jwt.encode({"userId": user_id, **claims}, jwt_secret, algorithm="HS256")
    return _make


@pytest.fixture
def auth_headers(make_token):
    """Authentication headers for API requests."""
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def sample_assessment():
    overview = "Leads with clarity and sets direction for a growing team. " * 5
    scores = "1,2,3,4,5 " * 60
    focus = "Delegation and coaching conversations need more consistency. " * 5
    return (
        f"**Executive Overview**\n{overview}\n"
        f"**Raw Scores**\n{scores}\n"
        f"**Development Focus**\n{focus}"
    )


@pytest.fixture
def configured_app(monkeypatch, mock_ollama_client, storage):
    """Pre-configured app with all standard mocks."""
    from fastapi.testclient import TestClient
    from main import app
    from utils.storage import get_storage

    app.dependency_overrides[get_storage] = lambda: storage

    monkeypatch.setattr("routes.chat.ollama.AsyncClient", lambda **kwargs: mock_ollama_client)
    monkeypatch.setattr("routes.chat_stream.ollama.AsyncClient", lambda **kwargs: mock_ollama_client)

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
