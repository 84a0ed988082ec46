"""Pytest fixtures and config."""

import json

import pytest


@pytest.fixture(autouse=True)
def env_cleanup(monkeypatch):
    """Never pick up a real key or overrides from the developer's shell."""
    for name in (
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_BASE_URL",
        "CLAUDE_MODEL",
        "CLAUDE_CLIENT_ENV",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    yield


def sse(event: str, payload) -> bytes:
    """One server-sent event block as the API emits it."""
    data = payload if isinstance(payload, str) else json.dumps(payload, ensure_ascii=False)
    return f"event: {event}\ndata: {data}\n\n".encode("utf-8")


def thinking_delta(text: str) -> bytes:
    return sse(
        "content_block_delta",
        {"type": "content_block_delta", "index": 0, "delta": {"type": "thinking_delta", "thinking": text}},
    )


def text_delta(text: str, index: int = 1) -> bytes:
    return sse(
        "content_block_delta",
        {"type": "content_block_delta", "index": index, "delta": {"type": "text_delta", "text": text}},
    )


@pytest.fixture
def full_stream() -> bytes:
    """A complete thinking-then-answer stream, including the events the decoder ignores."""
    return b"".join(
        [
            sse("message_start", {"type": "message_start", "message": {"id": "msg_1", "content": []}}),
            sse("content_block_start", {"type": "content_block_start", "index": 0, "content_block": {"type": "thinking", "thinking": ""}}),
            sse("ping", {"type": "ping"}),
            thinking_delta("Let me "),
            thinking_delta("think."),
            sse("content_block_delta", {"type": "content_block_delta", "index": 0, "delta": {"type": "signature_delta", "signature": "abc"}}),
            sse("content_block_stop", {"type": "content_block_stop", "index": 0}),
            sse("content_block_start", {"type": "content_block_start", "index": 1, "content_block": {"type": "text", "text": ""}}),
            text_delta("4"),
            text_delta("2 é✓"),
            sse("content_block_stop", {"type": "content_block_stop", "index": 1}),
            sse("message_delta", {"type": "message_delta", "delta": {"stop_reason": "end_turn"}, "usage": {"output_tokens": 12}}),
            sse("message_stop", {"type": "message_stop"}),
        ]
    )
