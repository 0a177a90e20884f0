"""OpenRouter API client implementation."""
from typing import AsyncIterator, Dict, List, Optional

import aiohttp

from ..config import get_settings, Settings
from ..prompts import get_prompt_loader
from ..utils.logging import get_logger
from .auth import validate_api_key
from .errors import AuthenticationError, GatewayError
from .streaming import StreamHandler, TokenCounter


class OpenRouterClient:
    """Text generation gateway: streamed chat completions and one-shot summaries."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        settings: Optional[Settings] = None
    ):
        """
        Initialize OpenRouter client.

        Args:
            api_key: Optional API key (uses settings/environment if not provided)
            settings: Optional settings (uses cached global settings if not provided)

        Raises:
            AuthenticationError: If no API key is configured
        """
        self.settings = settings or get_settings()
        self.api_key = validate_api_key(api_key or self.settings.openrouter_api_key)
        self.base_url = self.settings.openrouter_base_url.rstrip('/')
        self.proxy_url = self.settings.proxy_url
        self.token_counter = TokenCounter()
        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Async context manager entry."""
        await self.ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    @property
    def session(self) -> Optional[aiohttp.ClientSession]:
        return self._session

    async def ensure_session(self):
        """Ensure aiohttp session is created with timeouts suited to long streams."""
        if not self._session:
            self._session = aiohttp.ClientSession(
                headers=self._get_headers(),
                timeout=aiohttp.ClientTimeout(
                    total=None,          # Long generations are allowed
                    connect=30,
                    sock_read=120        # Max silence between chunks
                )
            )

    async def close(self):
        """Close the client session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _get_headers(self) -> Dict[str, str]:
        """Get request headers."""
        return {
            "Authorization": f"Bearer {self.api_key}",
            "X-Title": "Storyloom"
        }

    @staticmethod
    def build_messages(prompt: str, system_context: Optional[str] = None) -> List[Dict[str, str]]:
        """Chat messages for a prompt; the system message is omitted when context is empty."""
        messages = []
        if system_context:
            messages.append({"role": "system", "content": system_context})
        messages.append({"role": "user", "content": prompt})
        return messages

    async def _raise_for_status(self, response: aiohttp.ClientResponse) -> None:
        if response.status < 400:
            return
        body = await response.text()
        message = f"HTTP {response.status}: {body[:300]}"
        if response.status in (401, 403):
            raise AuthenticationError(message)
        raise GatewayError(message)

    async def stream_text(
        self,
        prompt: str,
        system_context: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> AsyncIterator[str]:
        """
        Stream a completion as text increments.

        The iterator ending is the completion signal; a terminal failure is
        raised as GatewayError (AuthenticationError for rejected keys).

        Args:
            prompt: User prompt
            system_context: Optional system instruction (omitted when empty)
            model: Model ID (defaults to the active model)
            temperature: Sampling temperature
            max_tokens: Maximum tokens to generate
        """
        await self.ensure_session()
        logger = get_logger("api")

        model = model or self.settings.active_model
        request_data = {
            "model": model,
            "messages": self.build_messages(prompt, system_context),
            "temperature": temperature,
            "stream": True
        }
        if max_tokens:
            request_data["max_tokens"] = max_tokens

        logger.debug(
            f"API Request: model={model}, temp={temperature}, stream=True, "
            f"system_context={len(system_context or '')} chars, prompt={len(prompt)} chars"
        )

        handler = StreamHandler()
        try:
            async with self._session.post(
                f"{self.base_url}/chat/completions",
                json=request_data,
                proxy=self.proxy_url
            ) as response:
                await self._raise_for_status(response)
                async for token in handler.iter_text(response):
                    yield token
        except aiohttp.ClientError as e:
            logger.error(f"Streaming request failed: {e}")
            raise GatewayError(f"Connection error: {e}") from e

    async def completion(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        Simple non-streaming completion.

        Returns:
            Generated text content
        """
        await self.ensure_session()
        logger = get_logger("api")

        model = model or self.settings.active_model
        request_data = {
            "model": model,
            "messages": self.build_messages(prompt, system_prompt),
            "temperature": temperature,
            "stream": False
        }
        if max_tokens:
            request_data["max_tokens"] = max_tokens

        logger.debug(f"API Request: model={model}, temp={temperature}, stream=False")

        try:
            async with self._session.post(
                f"{self.base_url}/chat/completions",
                json=request_data,
                proxy=self.proxy_url
            ) as response:
                await self._raise_for_status(response)
                data = await response.json()
        except aiohttp.ClientError as e:
            logger.error(f"Completion request failed: {e}")
            raise GatewayError(f"Connection error: {e}") from e
        except ValueError as e:
            logger.error(f"Completion response is not JSON: {e}")
            raise GatewayError(f"Invalid JSON in completion response: {e}") from e

        if not isinstance(data, dict):
            raise GatewayError(f"Unexpected completion response shape: {type(data).__name__}")

        if 'error' in data:
            error = data['error']
            raise GatewayError(error.get('message', str(error)) if isinstance(error, dict) else str(error))

        try:
            content = data['choices'][0]['message']['content']
        except (KeyError, IndexError, TypeError) as e:
            raise GatewayError(f"Unexpected completion response shape: {e}") from e

        if data.get('usage'):
            self.token_counter.update(data['usage'])

        return content or ""

    async def summarize(self, text: str, model: Optional[str] = None) -> str:
        """
        Summarize a chapter in one non-streaming request.

        Args:
            text: Chapter text
            model: Model ID (defaults to the active model)

        Returns:
            Summary text, stripped
        """
        loader = get_prompt_loader()
        prompts = loader.render("assistant/summarize", text=text)
        result = await self.completion(
            prompt=prompts['user'],
            system_prompt=prompts['system'] or None,
            model=model,
            temperature=loader.get_temperature(
                "assistant/summarize",
                default=self.settings.get_temperature('summarize')
            ),
            max_tokens=self.settings.get_max_tokens('summarize')
        )
        return result.strip()
