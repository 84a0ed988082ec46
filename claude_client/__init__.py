"""Client for the Claude text-generation API with an incremental stream decoder."""

from claude_client.core.errors import ConfigurationError, TransportError
from claude_client.models.client import ClaudeClient, ask, ask_sync
from claude_client.models.streaming import StreamDecoder

__all__ = [
    "ClaudeClient",
    "ConfigurationError",
    "StreamDecoder",
    "TransportError",
    "ask",
    "ask_sync",
]
