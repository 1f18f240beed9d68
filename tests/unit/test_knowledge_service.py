import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock

from config import Config
from services.knowledge import KnowledgeService
from tests.fixtures.responses import (
    KNOWLEDGE_FLAT_RESPONSE,
    KNOWLEDGE_NO_RESULTS_RESPONSE,
    KNOWLEDGE_RESPONSE,
)


@pytest.fixture
def knowledge_enabled(monkeypatch):
    monkeypatch.setattr(Config, "KNOWLEDGE_VECTOR_STORE_ID", "vs_test")
    monkeypatch.setattr(Config, "KNOWLEDGE_API_KEY", "sk-test")


@pytest.fixture
def knowledge_client(mocker):
    client = MagicMock()
    client.post = AsyncMock()
    mocker.patch("services.knowledge.HTTPClientManager.get_knowledge_client", return_value=client)
    return client


def json_response(status_code, payload):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    return response


@pytest.mark.anyio
async def test_search_returns_none_when_not_configured(knowledge_client):
    """Given no vector store, when searching, no request is made."""
    assert await KnowledgeService.search("delegation") is None
    knowledge_client.post.assert_not_called()


@pytest.mark.anyio
async def test_search_joins_message_output_text(knowledge_enabled, knowledge_client):
    knowledge_client.post.return_value = json_response(200, KNOWLEDGE_RESPONSE)

    result = await KnowledgeService.search("How should I coach?")

    assert result == (
        '- "Great coaches ask before they tell." - coaching_playbook.pdf\n'
        '- "Delegate outcomes, not tasks." - delegation_guide.md'
    )

    _, kwargs = knowledge_client.post.call_args
    assert kwargs["headers"] == {"Authorization": "Bearer sk-test"}
    assert kwargs["json"]["tools"] == [{"type": "file_search", "vector_store_ids": ["vs_test"]}]
    assert "User query: How should I coach?" in kwargs["json"]["input"]


@pytest.mark.anyio
async def test_search_uses_flattened_output_text(knowledge_enabled, knowledge_client):
    knowledge_client.post.return_value = json_response(200, KNOWLEDGE_FLAT_RESPONSE)

    result = await KnowledgeService.search("feedback")

    assert result == '- "Feedback lands best when it is specific." - feedback_models.pdf'


@pytest.mark.anyio
async def test_search_maps_no_results_sentinel_to_none(knowledge_enabled, knowledge_client):
    knowledge_client.post.return_value = json_response(200, KNOWLEDGE_NO_RESULTS_RESPONSE)
    assert await KnowledgeService.search("weather in Paris") is None


@pytest.mark.parametrize("http_status, exception", [
    (500, None),
    (401, None),
    (None, httpx.ReadTimeout("timed out")),
    (None, httpx.ConnectError("connection refused")),
    (None, ValueError("bad json")),
])
@pytest.mark.anyio
async def test_search_failures_return_none(knowledge_enabled, knowledge_client, http_status, exception):
    """Any failure of the lookup is reported as 'no context', never raised."""
    if exception:
        knowledge_client.post.side_effect = exception
    else:
        knowledge_client.post.return_value = json_response(http_status, {"error": {"message": "nope"}})

    assert await KnowledgeService.search("delegation") is None


@pytest.mark.parametrize("text, expected", [
    ("", None),
    ("   \n", None),
    ("No relevant results.", None),
    ("NO RELEVANT RESULTS", None),
    ("  - snippet - file.pdf  ", "- snippet - file.pdf"),
])
def test_normalize_result(text, expected):
    assert KnowledgeService.normalize_result(text) == expected


def test_extract_output_text_ignores_non_message_items():
    data = {"output": [{"type": "file_search_call"}, "junk", {"type": "message", "content": [{"type": "refusal"}]}]}
    assert KnowledgeService.extract_output_text(data) == ""
