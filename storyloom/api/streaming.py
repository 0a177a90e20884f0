"""Server-sent event stream parsing."""
import json
from typing import Any, AsyncIterator, Dict, Optional

from .errors import GatewayError
from ..utils.logging import get_logger


class StreamHandler:
    """Turn an SSE chat-completion response into text increments."""

    def __init__(self):
        """Initialize stream handler."""
        self.finish_reason: Optional[str] = None
        self.model: Optional[str] = None
        self.skipped_chunks = 0

    async def iter_text(self, response) -> AsyncIterator[str]:
        """
        Yield content deltas from an SSE response in arrival order.

        Lines that are not "data:" events are ignored and "data: [DONE]" ends
        the stream. A chunk that cannot be parsed, or carries no text (for
        example a safety-filtered delta), is skipped without ending the
        stream. An error object sent inside the stream raises GatewayError.

        Args:
            response: aiohttp response whose body is an SSE stream
        """
        logger = get_logger("stream")
        self.finish_reason = None
        self.skipped_chunks = 0

        async for raw_line in response.content:
            try:
                line = raw_line.decode('utf-8').strip()
            except UnicodeDecodeError:
                self.skipped_chunks += 1
                logger.debug(f"Skipping undecodable line: {raw_line[:120]!r}")
                continue

            if not line or not line.startswith('data: '):
                continue

            if line == 'data: [DONE]':
                break

            try:
                data = json.loads(line[6:])  # Remove 'data: ' prefix
            except json.JSONDecodeError:
                self.skipped_chunks += 1
                logger.debug(f"Skipping unparseable chunk: {line[:120]}")
                continue

            if not isinstance(data, dict):
                self.skipped_chunks += 1
                continue

            if 'error' in data:
                error = data['error']
                message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
                logger.error(f"Stream terminated by service error: {message}")
                raise GatewayError(message)

            if self.model is None and 'model' in data:
                self.model = data['model']

            token = self._extract_token(data)
            if token:
                yield token
            else:
                self.skipped_chunks += 1

        logger.debug(
            f"Stream finished: finish_reason={self.finish_reason}, "
            f"skipped_chunks={self.skipped_chunks}"
        )

    def _extract_token(self, data: Dict[str, Any]) -> str:
        choices = data.get('choices')
        if not isinstance(choices, list) or not choices:
            return ""
        choice = choices[0]
        if not isinstance(choice, dict):
            return ""
        if choice.get('finish_reason'):
            self.finish_reason = choice['finish_reason']
        delta = choice.get('delta')
        if not isinstance(delta, dict):
            return ""
        token = delta.get('content')
        return token if isinstance(token, str) else ""


class TokenCounter:
    """Track token usage across requests."""

    def __init__(self):
        """Initialize token counter."""
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_tokens = 0
        self.request_count = 0

    def update(self, usage: Dict[str, int]):
        """Update token counts from usage data."""
        self.prompt_tokens += usage.get('prompt_tokens', 0)
        self.completion_tokens += usage.get('completion_tokens', 0)
        self.total_tokens += usage.get('total_tokens', 0)
        self.request_count += 1

    def get_summary(self) -> Dict[str, Any]:
        """Get usage summary."""
        return {
            'prompt_tokens': self.prompt_tokens,
            'completion_tokens': self.completion_tokens,
            'total_tokens': self.total_tokens,
            'request_count': self.request_count,
            'avg_tokens_per_request': (
                self.total_tokens / self.request_count if self.request_count > 0 else 0
            )
        }

    def reset(self):
        """Reset all counters."""
        self.prompt_tokens = 0
        self.completion_tokens = 0
        self.total_tokens = 0
        self.request_count = 0
