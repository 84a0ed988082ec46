"""Entry point for claude-client: send one prompt and stream the answer to stdout.

Usage:
  claude-client "Why is the sky blue?"
  echo "Explain SSE" | claude-client --thinking-budget 2000 --show-thinking
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from claude_client.config.loader import Config, get_config
from claude_client.core.errors import ConfigurationError, TransportError
from claude_client.core.events import ThinkingResponse
from claude_client.core.logging_config import setup_logging
from claude_client.models.client import ClaudeClient
from claude_client.models.request_builder import is_legacy_model
from claude_client.models.streaming import RESPONSE_HEADER, THINKING_HEADER, ConsoleProgress

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="claude-client", description=__doc__.splitlines()[0])
    parser.add_argument("prompt", nargs="?", help="Prompt text; read from stdin when omitted")
    parser.add_argument("--model", help="Model name (default from config)")
    parser.add_argument("--max-tokens", type=int, help="Maximum tokens to generate")
    parser.add_argument("--temperature", type=float)
    parser.add_argument("--top-k", type=int)
    parser.add_argument("--top-p", type=float)
    parser.add_argument("--system", help="System prompt (messages models only)")
    parser.add_argument(
        "--thinking-budget", type=int, help="Enable extended thinking with this token budget"
    )
    parser.add_argument(
        "--show-thinking", action="store_true", help="Print the reasoning trace as well"
    )
    parser.add_argument("--no-stream", action="store_true", help="Wait for the full response")
    parser.add_argument("--config", help="Path to a YAML config file")
    return parser


async def run(args: argparse.Namespace, config: Config) -> int:
    prompt = args.prompt if args.prompt is not None else sys.stdin.read()
    model = args.model or config.generation.model
    stream = config.generation.stream and not args.no_stream and not is_legacy_model(model)
    client = ClaudeClient(config=config)
    # Completion-protocol models take the bare string; messages models a single user turn.
    request_prompt = prompt if is_legacy_model(model) else [{"role": "user", "content": prompt}]
    params = {
        "model": model,
        "max_tokens": args.max_tokens,
        "temperature": args.temperature,
        "top_k": args.top_k,
        "top_p": args.top_p,
        "system": args.system,
        "thinking": {"budget_tokens": args.thinking_budget} if args.thinking_budget else None,
    }
    try:
        answer = await client.ask(
            request_prompt,
            stream=stream,
            include_thinking=args.show_thinking,
            on_update=ConsoleProgress(show_thinking=args.show_thinking) if stream else None,
            **params,
        )
    except TransportError as e:
        logger.error("API request failed: %s", e)
        if e.body:
            print(f"Error details:\n{e.body}", file=sys.stderr)
        return 1
    if stream:
        print()
    elif isinstance(answer, ThinkingResponse):
        if answer.thinking:
            print(f"{THINKING_HEADER}{answer.thinking}{RESPONSE_HEADER}", end="")
        print(answer.response)
    else:
        print(answer)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    config = get_config(args.config)
    setup_logging(config.logging.level, use_json=config.logging.use_json)
    try:
        return asyncio.run(run(args, config))
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
