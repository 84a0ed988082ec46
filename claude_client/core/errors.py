"""Error taxonomy for the client. Configuration and transport errors reach the caller;
payload decode errors stay inside the stream decoder."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from claude_client.core.events import AccumulatedResult


class ClaudeClientError(Exception):
    """Base class for errors raised by claude_client."""


class ConfigurationError(ClaudeClientError):
    """Missing credential or a request that cannot be sent as given. Raised before any I/O."""


class TransportError(ClaudeClientError):
    """Non-success HTTP status or a stream that ended abnormally."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: str = "",
        partial: Optional[AccumulatedResult] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.partial = partial

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"{base} (status {self.status_code})"
        return base


class PayloadDecodeError(ClaudeClientError):
    """A single event payload could not be decoded. Never leaves the decoder."""
