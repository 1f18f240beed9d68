import pytest

from client.reconstructor import ConversationReconstructor, ReaderState
from models.api_models import Message
from tests.fixtures.responses import STREAM_BODY
from utils.constants import FALLBACK_MESSAGE


def fixed_id():
    return "assistant-turn-1"


def feed_all(reconstructor, body, chunk_size=None):
    data = body.encode("utf-8")
    if chunk_size is None:
        reconstructor.feed(data)
    else:
        for i in range(0, len(data), chunk_size):
            reconstructor.feed(data[i:i + chunk_size])
    return reconstructor.finish()


def test_reconstructs_single_assistant_message():
    messages = [Message(sender="user", text="How do I start?")]
    reconstructor = ConversationReconstructor(messages, id_factory=fixed_id)

    result = feed_all(reconstructor, STREAM_BODY)

    assert result.text == "Start with a question."
    assert result.completed
    assert result.succeeded
    assert len(messages) == 2
    assert messages[-1].id == "assistant-turn-1"
    assert messages[-1].sender == "ai"
    assert messages[-1].text == "Start with a question."


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64])
def test_chunk_boundaries_do_not_change_result(chunk_size):
    """Frames and multi-byte characters split across reads decode the same as one read."""
    body = (
        'data: {"delta":"Très "}\n\n'
        'data: {"delta":"bien ✓ 👍"}\n\n'
        'data: {"completed":true}\n\n'
        'data: [DONE]\n\n'
    )
    messages = []

    result = feed_all(ConversationReconstructor(messages), body, chunk_size)

    assert result.text == "Très bien ✓ 👍"
    assert len(messages) == 1


def test_deltas_replace_message_in_place():
    messages = [Message(sender="user", text="Hi")]
    reconstructor = ConversationReconstructor(messages, id_factory=fixed_id)

    reconstructor.feed(b'data: {"delta":"A"}\n\n')
    first = messages[-1]
    reconstructor.feed(b'data: {"delta":"B"}\n\n')

    assert len(messages) == 2
    assert messages[-1].text == "AB"
    assert messages[-1].id == first.id
    assert messages[-1].timestamp == first.timestamp


def test_sentinel_is_terminal_and_idempotent():
    messages = []
    reconstructor = ConversationReconstructor(messages)

    reconstructor.feed(b'data: {"delta":"done"}\n\ndata: [DONE]\n\n')
    reconstructor.feed(b'data: {"delta":" ignored"}\n\ndata: [DONE]\n\n')
    result = reconstructor.finish()

    assert reconstructor.state is ReaderState.DONE
    assert result.text == "done"
    assert messages[-1].text == "done"


def test_malformed_frame_is_skipped():
    body = (
        'data: {"delta":"Good "}\n\n'
        'data: {not json}\n\n'
        'data: ["list"]\n\n'
        'data: {"delta":"answer"}\n\n'
        'data: [DONE]\n\n'
    )

    result = feed_all(ConversationReconstructor(), body)

    assert result.text == "Good answer"


def test_non_data_lines_are_ignored():
    body = (
        ': keep-alive\n\n'
        'event: message\n'
        'data: {"delta":"kept"}\n\n'
        'id: 4\n\n'
        'data: [DONE]\n\n'
    )

    assert feed_all(ConversationReconstructor(), body).text == "kept"


def test_error_after_partial_text_keeps_partial():
    messages = []
    body = 'data: {"delta":"Half an ans"}\n\ndata: {"error":"Sorry, try again."}\n\ndata: [DONE]\n\n'

    result = feed_all(ConversationReconstructor(messages), body)

    assert result.text == "Half an ans"
    assert result.error == "Sorry, try again."
    assert not result.succeeded
    assert messages[-1].text == "Half an ans"


def test_error_without_text_is_kept_out_of_transcript():
    messages = [Message(sender="user", text="Hi")]
    body = 'data: {"error":"Sorry, try again."}\n\ndata: [DONE]\n\n'

    result = feed_all(ConversationReconstructor(messages), body)

    assert result.text == ""
    assert result.error == "Sorry, try again."
    assert result.message.sender == "ai"
    assert result.message.text == "Sorry, try again."
    assert [m.text for m in messages] == ["Hi"]


def test_stream_cut_without_sentinel_finalizes_partial():
    messages = []
    reconstructor = ConversationReconstructor(messages)

    reconstructor.feed(b'data: {"delta":"Interrupted"}\n\ndata: {"delta":" tail"}')
    result = reconstructor.finish()

    assert result.text == "Interrupted tail"
    assert not result.completed
    assert len(messages) == 1


def test_empty_stream_falls_back_to_generic_apology():
    messages = []

    result = feed_all(ConversationReconstructor(messages), "")

    assert result.error == FALLBACK_MESSAGE
    assert result.message.text == FALLBACK_MESSAGE
    assert messages == []


@pytest.mark.anyio
async def test_consume_stops_at_sentinel():
    pulled = []

    async def chunks():
        for chunk in [b'data: {"delta":"x"}\n\n', b"data: [DONE]\n\n", b'data: {"delta":"y"}\n\n']:
            pulled.append(chunk)
            yield chunk

    result = await ConversationReconstructor().consume(chunks())

    assert result.text == "x"
    assert len(pulled) == 2
