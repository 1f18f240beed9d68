import json

DONE_FRAME = "data: [DONE]\n\n"


def split_frames(body):
    """Split an SSE body into its `data:` payload strings, in order."""
    payloads = []
    for frame in body.split("\n\n"):
        if frame.startswith("data: "):
            payloads.append(frame[len("data: "):])
    return payloads


def parse_frames(body):
    """
    Decode every JSON frame in an SSE body.
    The `[DONE]` sentinel is returned as the string "[DONE]".
    """
    return [payload if payload == "[DONE]" else json.loads(payload) for payload in split_frames(body)]


def assert_ends_with_single_sentinel(body):
    """The sentinel is the last frame and appears exactly once."""
    assert body.endswith(DONE_FRAME), f"SSE body does not end with the sentinel:\n{body}"
    assert body.count(DONE_FRAME) == 1, f"Sentinel written more than once:\n{body}"


def deltas_text(body):
    """Concatenate every delta payload in an SSE body."""
    return "".join(frame["delta"] for frame in parse_frames(body) if isinstance(frame, dict) and "delta" in frame)


async def collect(async_iterator):
    return [item async for item in async_iterator]
