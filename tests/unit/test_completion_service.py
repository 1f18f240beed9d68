import pytest

from models.chat_models import StreamEvent, StreamEventKind
from services.completion import CompletionService
from tests.fixtures.mock_clients import StreamingLLMClient, response_error, text_chunks
from tests.helpers import collect
from utils.constants import FALLBACK_MESSAGE


@pytest.mark.anyio
async def test_complete_sync_returns_model_text(mock_ollama_client):
    service = CompletionService(mock_ollama_client, model="coach-model")

    result = await service.complete_sync("prompt")

    assert result.text == "non-streamed response"
    assert not result.failed
    mock_ollama_client.chat.assert_awaited_once_with(
        model="coach-model", messages=[{"role": "user", "content": "prompt"}]
    )


@pytest.mark.parametrize("client", [
    StreamingLLMClient(reply="   "),
    StreamingLLMClient(open_error=response_error()),
    StreamingLLMClient(open_error=ConnectionError("refused")),
])
@pytest.mark.anyio
async def test_complete_sync_falls_back_on_failure(client):
    """Blank answers and upstream errors become the fallback text with the error kept."""
    result = await CompletionService(client).complete_sync("prompt")

    assert result.text == FALLBACK_MESSAGE
    assert result.failed


@pytest.mark.parametrize("chunk, expected", [
    ({"message": {"content": "Hi"}, "done": False}, [StreamEvent.delta("Hi")]),
    ({"message": {"content": ""}, "done": True}, [StreamEvent.completed()]),
    ({"message": {"content": "end"}, "done": True}, [StreamEvent.delta("end"), StreamEvent.completed()]),
    ({"message": {"content": "", "thinking": "hmm"}, "done": False}, [StreamEvent.unknown("thinking")]),
    ({"message": {"content": "", "tool_calls": [{}]}, "done": False}, [StreamEvent.unknown("tool_calls")]),
    ({"done": False}, [StreamEvent.unknown("empty")]),
])
def test_events_for_chunk(chunk, expected):
    assert CompletionService.events_for_chunk(chunk) == expected


@pytest.mark.anyio
async def test_complete_stream_yields_deltas_then_completed():
    client = StreamingLLMClient(chunks=text_chunks(["Ask ", "first."]))

    events = await collect(CompletionService(client).complete_stream("prompt"))

    assert [e.kind for e in events] == [StreamEventKind.DELTA, StreamEventKind.DELTA, StreamEventKind.COMPLETED]
    assert "".join(e.text for e in events if e.text) == "Ask first."
    assert client.call_history[0]["stream"] is True
    assert client.streams[0].closed


@pytest.mark.anyio
async def test_complete_stream_stops_after_completed():
    """Chunks after the done flag are never read."""
    chunks = text_chunks(["one"]) + [{"message": {"content": "late"}, "done": False}]
    client = StreamingLLMClient(chunks=chunks)

    events = await collect(CompletionService(client).complete_stream("prompt"))

    assert events[-1].kind is StreamEventKind.COMPLETED
    assert all(e.text != "late" for e in events)


@pytest.mark.anyio
async def test_complete_stream_open_failure_yields_single_error_event():
    client = StreamingLLMClient(open_error=response_error("model not found"))

    events = await collect(CompletionService(client).complete_stream("prompt"))

    assert events == [StreamEvent.failed("model not found")]


@pytest.mark.anyio
async def test_complete_stream_mid_stream_error_propagates_and_closes():
    client = StreamingLLMClient(chunks=text_chunks(["partial"], done=False), fail_after=1)
    events = []

    with pytest.raises(ConnectionError):
        async for event in CompletionService(client).complete_stream("prompt"):
            events.append(event)

    assert events == [StreamEvent.delta("partial")]
    assert client.streams[0].closed


@pytest.mark.parametrize("stream_error, expected_error", [
    (response_error("model 'coach' not found"), "model 'coach' not found"),
    (None, "upstream connection reset"),
])
@pytest.mark.anyio
async def test_complete_stream_first_chunk_failure_yields_single_error_event(stream_error, expected_error):
    """The request is only sent on the first read, so errors there count as failing to open."""
    client = StreamingLLMClient(fail_after=0, stream_error=stream_error)

    events = await collect(CompletionService(client).complete_stream("prompt"))

    assert events == [StreamEvent.failed(expected_error)]
    assert client.streams[0].closed


@pytest.mark.anyio
async def test_complete_stream_empty_upstream_yields_nothing():
    client = StreamingLLMClient(chunks=[])

    events = await collect(CompletionService(client).complete_stream("prompt"))

    assert events == []
    assert client.streams[0].closed
