"""Incremental decoder for the Messages API server-sent event stream.

Bytes arrive from the transport in chunks of any size. The decoder keeps one
pending buffer, cuts it at blank lines into events, and folds
content_block_delta payloads into two channels:

- thinking: thinking_delta fragments (reasoning trace)
- response: text_delta fragments (final answer)

Each fragment is surfaced as a StreamUpdate as soon as its data line is seen,
so callers can render output progressively. A bad payload is dropped and
decoding continues; only the transport can end a stream with an error.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Callable, Optional, TextIO

from claude_client.core.errors import PayloadDecodeError
from claude_client.core.events import (
    AccumulatedResult,
    StreamUpdate,
    TextDelta,
    ThinkingDelta,
    UpdateKind,
    parse_delta,
)

logger = logging.getLogger(__name__)

EVENT_TERMINATOR = b"\n\n"
CONTENT_BLOCK_DELTA = "content_block_delta"

THINKING_HEADER = "Thinking:\n"
RESPONSE_HEADER = "\n\n---\nResponse:\n"

UpdateCallback = Callable[[StreamUpdate], None]


class StreamDecoder:
    """
    Stateful parser for one streamed response.

    Usage:
        decoder = StreamDecoder()
        async for chunk in resp.aiter_bytes():
            for update in decoder.feed(chunk):
                ...
        result = decoder.finalize()

    One instance per in-flight request; not safe to share between tasks.
    """

    def __init__(self, on_update: Optional[UpdateCallback] = None) -> None:
        self._buffer = bytearray()
        self._result = AccumulatedResult()
        self._on_update = on_update
        self._finalized = False

    @property
    def result(self) -> AccumulatedResult:
        """Accumulated text so far. Safe to read mid-stream."""
        return self._result

    @property
    def pending(self) -> bytes:
        """Bytes of the trailing partial event not yet dispatched."""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[StreamUpdate]:
        """Ingest one chunk and dispatch every complete event now in the buffer."""
        if self._finalized:
            raise RuntimeError("StreamDecoder already finalized")
        self._buffer += chunk
        updates: list[StreamUpdate] = []
        while True:
            end = self._buffer.find(EVENT_TERMINATOR)
            if end < 0:
                break
            block = bytes(self._buffer[:end])
            del self._buffer[: end + len(EVENT_TERMINATOR)]
            self._process_block(block, updates)
        return updates

    def finalize(self) -> AccumulatedResult:
        """End of stream. A trailing partial event is discarded."""
        if not self._finalized:
            self._finalized = True
            if self._buffer.strip():
                logger.debug("Discarding %d bytes of unterminated event", len(self._buffer))
            self._buffer.clear()
        return self._result

    def _process_block(self, block: bytes, updates: list[StreamUpdate]) -> None:
        # A block never inherits the type of the previous one.
        event_type: Optional[str] = None
        # Blank lines cannot split a multi-byte UTF-8 sequence, so each block decodes on its own.
        text = block.decode("utf-8", errors="replace")
        for line in text.split("\n"):
            line = line.rstrip("\r")
            if line.startswith("event:"):
                event_type = line[6:].strip()
            elif line.startswith("data:"):
                self._dispatch(event_type, line[5:].lstrip(), updates)

    def _dispatch(self, event_type: Optional[str], data: str, updates: list[StreamUpdate]) -> None:
        if event_type == CONTENT_BLOCK_DELTA:
            try:
                payload = _load_payload(data)
            except PayloadDecodeError as e:
                logger.debug("Dropping content_block_delta: %s", e)
                return
            delta = parse_delta(payload)
            if isinstance(delta, ThinkingDelta):
                self._append_thinking(delta.thinking, updates)
            elif isinstance(delta, TextDelta):
                self._append_response(delta.text, updates)
        elif event_type == "message_delta":
            try:
                payload = _load_payload(data)
            except PayloadDecodeError:
                return
            delta = payload.get("delta")
            if isinstance(delta, dict) and delta.get("stop_reason"):
                self._result.stop_reason = delta["stop_reason"]
        elif event_type == "error":
            try:
                payload = _load_payload(data)
            except PayloadDecodeError:
                payload = {"message": data}
            error = payload.get("error") if isinstance(payload.get("error"), dict) else payload
            self._result.error = error
            logger.warning("Stream error event: %s", error.get("message", ""))

    def _append_thinking(self, fragment: str, updates: list[StreamUpdate]) -> None:
        if fragment and not self._result.thinking_announced:
            self._result.thinking_announced = True
            self._emit(StreamUpdate(kind=UpdateKind.THINKING_STARTED, text=THINKING_HEADER), updates)
        self._result.thinking += fragment
        if fragment:
            self._emit(StreamUpdate(kind=UpdateKind.THINKING, text=fragment), updates)

    def _append_response(self, fragment: str, updates: list[StreamUpdate]) -> None:
        if not self._result.response_announced:
            self._result.response_announced = True
            if self._result.thinking_announced:
                self._emit(
                    StreamUpdate(kind=UpdateKind.RESPONSE_STARTED, text=RESPONSE_HEADER), updates
                )
        self._result.response += fragment
        if fragment:
            self._emit(StreamUpdate(kind=UpdateKind.RESPONSE, text=fragment), updates)

    def _emit(self, update: StreamUpdate, updates: list[StreamUpdate]) -> None:
        updates.append(update)
        if self._on_update is not None:
            self._on_update(update)


def _load_payload(data: str) -> dict:
    try:
        payload = json.loads(data)
    except json.JSONDecodeError as e:
        raise PayloadDecodeError(f"invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise PayloadDecodeError(f"expected object, got {type(payload).__name__}")
    return payload


class ConsoleProgress:
    """Writes updates to a text stream as they arrive, headers included."""

    def __init__(self, out: Optional[TextIO] = None, show_thinking: bool = True) -> None:
        self._out = out
        self._show_thinking = show_thinking

    def __call__(self, update: StreamUpdate) -> None:
        if not self._show_thinking and update.kind in (
            UpdateKind.THINKING_STARTED,
            UpdateKind.THINKING,
            UpdateKind.RESPONSE_STARTED,
        ):
            return
        out = self._out or sys.stdout
        out.write(update.text)
        out.flush()
