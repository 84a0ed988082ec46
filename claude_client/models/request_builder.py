"""Build outbound request bodies, endpoint and headers.

Older model families (claude-v1, claude-instant, claude-2) only speak the
single-prompt /v1/complete protocol; every other model goes to /v1/messages.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from claude_client.core.errors import ConfigurationError
from claude_client.core.events import (
    BuiltRequest,
    ChatMessage,
    CompletionRequest,
    MessagesRequest,
    ProtocolMode,
    ThinkingConfig,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
DEFAULT_API_VERSION = "2023-06-01"
HUMAN_PROMPT = "\n\nHuman: "
AI_PROMPT = "\n\nAssistant:"

_LEGACY_MODEL = re.compile(r"^claude-(?:v1|instant|2)(?:$|[.\-@])")

Prompt = Union[str, Sequence[Mapping[str, Any]]]


def is_legacy_model(model: str) -> bool:
    """True for model names served only by the single-prompt completion endpoint."""
    return bool(_LEGACY_MODEL.match(model or ""))


def legacy_prompt(prompt: str) -> str:
    """Wrap a bare prompt in the Human/Assistant turn convention."""
    if prompt.startswith(HUMAN_PROMPT):
        return prompt if prompt.rstrip().endswith("Assistant:") else prompt + AI_PROMPT
    return f"{HUMAN_PROMPT}{prompt}{AI_PROMPT}"


def _thinking_config(
    thinking: Union[ThinkingConfig, Mapping[str, Any], None],
) -> Optional[ThinkingConfig]:
    if thinking is None or isinstance(thinking, ThinkingConfig):
        return thinking
    if not isinstance(thinking, Mapping):
        raise ConfigurationError(
            f"thinking must be a ThinkingConfig or a mapping, got {type(thinking).__name__}"
        )
    if thinking.get("type") == "disabled":
        return None
    try:
        return ThinkingConfig.model_validate(dict(thinking))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid thinking config: {e}") from e


def _chat_messages(prompt: Any) -> list[ChatMessage]:
    if isinstance(prompt, (str, bytes)) or not isinstance(prompt, Sequence):
        raise ConfigurationError(
            "Messages models need the prompt as a list of {'role', 'content'} entries, "
            f"got {type(prompt).__name__}"
        )
    if not prompt:
        raise ConfigurationError("Prompt must contain at least one message")
    try:
        return [ChatMessage.model_validate(dict(m)) for m in prompt]
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid message in prompt: {e}") from e


class RequestBuilder:
    """Assembles BuiltRequest records. Holds connection settings, not per-call parameters."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
    ) -> None:
        self._api_key = api_key
        self._base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self._api_version = api_version

    def headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
            "content-type": "application/json",
        }

    def build(
        self,
        prompt: Prompt,
        *,
        model: str,
        max_tokens: int,
        stop_sequences: Optional[Sequence[str]] = None,
        temperature: Optional[float] = None,
        top_k: Optional[int] = None,
        top_p: Optional[float] = None,
        system: Optional[str] = None,
        thinking: Union[ThinkingConfig, Mapping[str, Any], None] = None,
        stream: bool = False,
    ) -> BuiltRequest:
        """Choose the protocol for `model` and build its request. Raises ConfigurationError."""
        if is_legacy_model(model):
            return self._build_complete(
                prompt,
                model=model,
                max_tokens=max_tokens,
                stop_sequences=stop_sequences,
                temperature=temperature,
                top_k=top_k,
                top_p=top_p,
                thinking=thinking,
                stream=stream,
            )
        return self._build_messages(
            prompt,
            model=model,
            max_tokens=max_tokens,
            stop_sequences=stop_sequences,
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            system=system,
            thinking=_thinking_config(thinking),
            stream=stream,
        )

    def _build_complete(
        self,
        prompt: Prompt,
        *,
        model: str,
        max_tokens: int,
        stop_sequences: Optional[Sequence[str]],
        temperature: Optional[float],
        top_k: Optional[int],
        top_p: Optional[float],
        thinking: Any,
        stream: bool,
    ) -> BuiltRequest:
        if not isinstance(prompt, str):
            raise ConfigurationError(
                f"Model {model} uses the completion protocol; prompt must be a string"
            )
        if _thinking_config(thinking) is not None:
            raise ConfigurationError(f"Model {model} does not support extended thinking")
        if stream:
            logger.debug("Streaming is not used for completion-protocol model %s", model)
        extra: dict[str, Any] = {}
        if stop_sequences is not None:
            extra["stop_sequences"] = list(stop_sequences)
        request = CompletionRequest(
            prompt=legacy_prompt(prompt),
            model=model,
            max_tokens_to_sample=max_tokens,
            temperature=0.7 if temperature is None else temperature,
            top_k=-1 if top_k is None else top_k,
            top_p=-1 if top_p is None else top_p,
            **extra,
        )
        return BuiltRequest(
            mode=ProtocolMode.COMPLETE,
            url=f"{self._base_url}/v1/complete",
            headers=self.headers(),
            body=request.model_dump(),
            stream=False,
        )

    def _build_messages(
        self,
        prompt: Prompt,
        *,
        model: str,
        max_tokens: int,
        stop_sequences: Optional[Sequence[str]],
        temperature: Optional[float],
        top_k: Optional[int],
        top_p: Optional[float],
        system: Optional[str],
        thinking: Optional[ThinkingConfig],
        stream: bool,
    ) -> BuiltRequest:
        messages = _chat_messages(prompt)
        notices: list[str] = []
        if thinking is not None:
            # Extended thinking requires temperature 1 and rejects top_k / top_p.
            if temperature not in (None, 1):
                logger.debug("Thinking enabled: temperature %s forced to 1", temperature)
            temperature = 1
            top_k = None
            top_p = None
            budget = thinking.budget_tokens
            if max_tokens < 2 * budget:
                notice = (
                    f"max_tokens ({max_tokens}) must exceed the thinking budget ({budget}) "
                    f"by at least the budget; using max_tokens={2 * budget}"
                )
                logger.warning(notice)
                notices.append(notice)
                max_tokens = 2 * budget
        request = MessagesRequest(
            model=model,
            max_tokens=max_tokens,
            messages=messages,
            temperature=temperature,
            top_k=top_k,
            top_p=top_p,
            thinking=thinking,
            system=system or None,
            stream=True if stream else None,
        )
        body = request.model_dump(exclude_none=True)
        if stop_sequences:
            body["stop_sequences"] = list(stop_sequences)
        return BuiltRequest(
            mode=ProtocolMode.MESSAGES,
            url=f"{self._base_url}/v1/messages",
            headers=self.headers(),
            body=body,
            stream=stream,
            notices=notices,
        )
