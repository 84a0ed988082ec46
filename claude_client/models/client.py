"""HTTP client for the Claude API: credential resolution, blocking and streaming calls.

Streaming contract: see claude_client.models.streaming. Bytes from
httpx.Response.aiter_bytes() go straight into a StreamDecoder; callers get
StreamUpdate increments and a final thinking/response pair.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import Any, AsyncIterator, Optional, Union

import httpx

from claude_client.config.loader import Config
from claude_client.core.errors import ConfigurationError, TransportError
from claude_client.core.events import (
    BuiltRequest,
    ProtocolMode,
    StreamUpdate,
    ThinkingResponse,
)
from claude_client.models.request_builder import Prompt, RequestBuilder
from claude_client.models.streaming import StreamDecoder, UpdateCallback

logger = logging.getLogger(__name__)

DEFAULT_API_KEY_ENV = "ANTHROPIC_API_KEY"

Answer = Union[str, ThinkingResponse]


def resolve_api_key(api_key: Optional[str] = None, env_var: str = DEFAULT_API_KEY_ENV) -> str:
    """Caller-supplied key wins, then the environment. Raises ConfigurationError if neither is set."""
    if api_key:
        return api_key
    from_env = os.getenv(env_var, "")
    if from_env:
        return from_env
    raise ConfigurationError(
        f"Please provide an API key or set it as the {env_var} environment variable."
    )


def _answer(thinking: str, response: str, include_thinking: bool) -> Answer:
    if include_thinking:
        return ThinkingResponse(thinking=thinking, response=response)
    return response


class ClaudeClient:
    """One API key, one base URL. A fresh httpx.AsyncClient per call; no pooling, no retries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        config: Optional[Config] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or Config.load()
        api = self._config.api
        self._builder = RequestBuilder(
            resolve_api_key(api_key or api.api_key, api.api_key_env or DEFAULT_API_KEY_ENV),
            base_url=base_url or api.base_url,
            api_version=api.version,
        )
        self._timeout = timeout if timeout is not None else api.timeout
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)

    def build(self, prompt: Prompt, *, stream: bool = False, **params: Any) -> BuiltRequest:
        """Fill unset parameters from config and build the request. No I/O."""
        gen = self._config.generation
        params["model"] = params.get("model") or gen.model
        params["max_tokens"] = params.get("max_tokens") or gen.max_tokens
        if params.get("temperature") is None:
            params["temperature"] = gen.temperature
        return self._builder.build(prompt, stream=stream, **params)

    async def complete(
        self, prompt: Prompt, *, include_thinking: bool = False, **params: Any
    ) -> Answer:
        """Single blocking request; the whole JSON body arrives at once."""
        return await self._complete(self.build(prompt, stream=False, **params), include_thinking)

    async def _complete(self, built: BuiltRequest, include_thinking: bool) -> Answer:
        data = await self._post(built)
        if built.mode is ProtocolMode.COMPLETE:
            return _answer("", (data.get("completion") or "").strip(), include_thinking)
        thinking_parts = []
        text_parts = []
        for block in data.get("content") or []:
            if not isinstance(block, dict):
                continue
            if block.get("type") == "thinking":
                thinking_parts.append(block.get("thinking") or "")
            elif block.get("type") == "text":
                text_parts.append(block.get("text") or "")
        return _answer("".join(thinking_parts), "".join(text_parts), include_thinking)

    def stream(
        self,
        prompt: Prompt,
        *,
        decoder: Optional[StreamDecoder] = None,
        **params: Any,
    ) -> AsyncIterator[StreamUpdate]:
        """Async iterator of updates. Pass a decoder to read the accumulated result afterwards."""
        built = self.build(prompt, stream=True, **params)
        if built.mode is ProtocolMode.COMPLETE:
            raise ConfigurationError(f"Model {built.body['model']} does not support streaming")
        return self._stream(built, decoder or StreamDecoder())

    async def ask(
        self,
        prompt: Prompt,
        *,
        stream: Optional[bool] = None,
        include_thinking: bool = False,
        on_update: Optional[UpdateCallback] = None,
        **params: Any,
    ) -> Answer:
        """Answer only, or thinking and answer when include_thinking is set."""
        if stream is None:
            stream = self._config.generation.stream
        built = self.build(prompt, stream=stream, **params)
        if not built.stream:
            return await self._complete(built, include_thinking)
        decoder = StreamDecoder(on_update=on_update)
        async for _ in self._stream(built, decoder):
            pass
        result = decoder.finalize()
        return _answer(result.thinking, result.response, include_thinking)

    async def _post(self, built: BuiltRequest) -> dict[str, Any]:
        logger.info("POST %s model=%s", built.url, built.body.get("model"))
        try:
            async with self._http() as client:
                r = await client.post(built.url, json=built.body, headers=built.headers)
        except httpx.HTTPError as e:
            raise TransportError(f"API request failed: {e}") from e
        if not r.is_success:
            raise TransportError(
                f"API request failed with status {r.reason_phrase}",
                status_code=r.status_code,
                body=r.text,
            )
        try:
            data = r.json()
        except ValueError as e:
            raise TransportError(
                "API returned a non-JSON body", status_code=r.status_code, body=r.text
            ) from e
        if not isinstance(data, dict):
            raise TransportError("API returned an unexpected body", status_code=r.status_code, body=r.text)
        return data

    async def _stream(
        self, built: BuiltRequest, decoder: StreamDecoder
    ) -> AsyncIterator[StreamUpdate]:
        logger.info("POST %s model=%s (stream)", built.url, built.body.get("model"))
        try:
            async with self._http() as client:
                async with client.stream(
                    "POST", built.url, json=built.body, headers=built.headers
                ) as resp:
                    if not resp.is_success:
                        body = (await resp.aread()).decode("utf-8", errors="replace")
                        raise TransportError(
                            f"API request failed with status {resp.reason_phrase}",
                            status_code=resp.status_code,
                            body=body,
                        )
                    async for chunk in resp.aiter_bytes():
                        for update in decoder.feed(chunk):
                            yield update
        except httpx.HTTPError as e:
            raise TransportError(
                f"Stream ended abnormally: {e}", partial=decoder.finalize()
            ) from e
        finally:
            # Closing the connection early ends the stream the same way.
            decoder.finalize()
        result = decoder.result
        if result.error is not None:
            raise TransportError(
                f"Stream reported an error: {result.error.get('message', '')}",
                body=json.dumps(result.error),
                partial=result,
            )


async def ask(
    prompt: Prompt,
    *,
    api_key: Optional[str] = None,
    config: Optional[Config] = None,
    **kwargs: Any,
) -> Optional[Answer]:
    """Top-level call. Configuration errors raise; transport failures are logged and yield None."""
    client = ClaudeClient(api_key, config=config)
    try:
        return await client.ask(prompt, **kwargs)
    except TransportError as e:
        logger.error("API request failed: %s", e)
        if e.body:
            logger.error("Error details: %s", e.body)
        return None


def ask_sync(prompt: Prompt, **kwargs: Any) -> Optional[Answer]:
    """Blocking wrapper around ask() for scripts without an event loop."""
    return asyncio.run(ask(prompt, **kwargs))

