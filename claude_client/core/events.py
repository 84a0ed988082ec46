"""Payloads exchanged with the API and with callers. All records are Pydantic models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError


class ProtocolMode(str, Enum):
    """Wire protocol chosen from the model name."""

    COMPLETE = "complete"  # legacy single-prompt endpoint
    MESSAGES = "messages"


class UpdateKind(str, Enum):
    """What a StreamUpdate carries to the caller."""

    THINKING_STARTED = "thinking_started"
    RESPONSE_STARTED = "response_started"
    THINKING = "thinking"
    RESPONSE = "response"


class StreamUpdate(BaseModel):
    """One increment surfaced while the stream is still open."""

    kind: UpdateKind
    text: str = ""


# --- stream deltas ---


class ThinkingDelta(BaseModel):
    type: Literal["thinking_delta"] = "thinking_delta"
    thinking: str = ""


class TextDelta(BaseModel):
    type: Literal["text_delta"] = "text_delta"
    text: str = ""


Delta = Union[ThinkingDelta, TextDelta]

_delta_adapter = TypeAdapter(Delta)


def parse_delta(payload: Any) -> Optional[Delta]:
    """Return the typed delta of a content_block_delta payload, or None if it is not one we know."""
    if not isinstance(payload, dict):
        return None
    delta = payload.get("delta")
    if not isinstance(delta, dict) or delta.get("type") not in ("thinking_delta", "text_delta"):
        return None
    try:
        return _delta_adapter.validate_python(delta)
    except ValidationError:
        return None


class AccumulatedResult(BaseModel):
    """Running and final output of a StreamDecoder."""

    thinking: str = ""
    response: str = ""
    thinking_announced: bool = False
    response_announced: bool = False
    stop_reason: Optional[str] = None
    error: Optional[dict[str, Any]] = Field(default=None, description="Server-sent error event")


class ThinkingResponse(BaseModel):
    """Caller-facing result when the reasoning trace is requested."""

    thinking: str = ""
    response: str = ""


# --- outbound requests ---


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: Union[str, list[dict[str, Any]]]


class ThinkingConfig(BaseModel):
    """Budgeted reasoning. The API rejects budgets below 1024 tokens."""

    type: Literal["enabled"] = "enabled"
    budget_tokens: int = Field(ge=1024)


class CompletionRequest(BaseModel):
    """Body of the legacy /v1/complete endpoint. Every field is always sent."""

    prompt: str
    model: str
    max_tokens_to_sample: int
    stop_sequences: list[str] = Field(default_factory=lambda: ["\n\nHuman:"])
    temperature: float = 0.7
    top_k: int = -1
    top_p: float = -1


class MessagesRequest(BaseModel):
    """Body of /v1/messages. Unset optional fields are omitted on the wire."""

    model: str
    max_tokens: int
    messages: list[ChatMessage]
    temperature: Optional[float] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    thinking: Optional[ThinkingConfig] = None
    system: Optional[str] = None
    stream: Optional[bool] = None


class BuiltRequest(BaseModel):
    """Everything the transport needs to send one request."""

    mode: ProtocolMode
    url: str
    headers: dict[str, str]
    body: dict[str, Any]
    stream: bool = False
    notices: list[str] = Field(default_factory=list)
