"""Tests for the OpenRouter gateway, SSE parsing and authentication."""

import json
import pytest
from unittest.mock import AsyncMock, Mock, patch

import aiohttp

from storyloom.api import (
    OpenRouterClient,
    validate_api_key,
    GatewayError,
    AuthenticationError,
    AssistantError
)
from storyloom.api.streaming import StreamHandler, TokenCounter


async def _aiter(items):
    for item in items:
        yield item


def sse(*events):
    """Encode events as SSE byte lines the way aiohttp yields them."""
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}\n".encode('utf-8'))
        lines.append(b"\n")
    return lines


def delta(text, finish_reason=None):
    return {"model": "google/gemini-2.5-flash", "choices": [{"delta": {"content": text}, "finish_reason": finish_reason}]}


class FakeResponse:
    """Minimal stand-in for aiohttp.ClientResponse."""

    def __init__(self, status=200, lines=None, body=None, raw_body=None):
        self.status = status
        self.content = _aiter(lines or [])
        self._body = body or {}
        self._raw_body = raw_body

    async def text(self):
        return self._raw_body if self._raw_body is not None else json.dumps(self._body)

    async def json(self):
        if self._raw_body is not None:
            return json.loads(self._raw_body)
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Records POST requests and replays a canned response."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, json=None, proxy=None):
        self.requests.append({"url": url, "json": json, "proxy": proxy})
        if self.error:
            raise self.error
        return self.response

    async def close(self):
        pass


@pytest.fixture
def client(settings):
    return OpenRouterClient(settings=settings)


async def collect(agen):
    return [chunk async for chunk in agen]


class TestAuth:
    """Test API key validation."""

    def test_explicit_key(self):
        assert validate_api_key('  sk-or-abc  ') == 'sk-or-abc'

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv('OPENROUTER_API_KEY', 'sk-or-from-env')
        assert validate_api_key() == 'sk-or-from-env'

    def test_missing_key(self, monkeypatch):
        monkeypatch.delenv('OPENROUTER_API_KEY', raising=False)
        with pytest.raises(AuthenticationError, match="API key not configured"):
            validate_api_key()

    def test_error_hierarchy(self):
        assert issubclass(AuthenticationError, GatewayError)
        assert issubclass(GatewayError, AssistantError)


class TestStreamHandler:
    """Test SSE parsing."""

    @pytest.mark.asyncio
    async def test_yields_deltas_in_order(self):
        handler = StreamHandler()
        response = Mock(content=_aiter(sse(delta("Once"), delta(" upon"), delta(" a time", "stop"), "[DONE]")))

        chunks = await collect(handler.iter_text(response))

        assert chunks == ["Once", " upon", " a time"]
        assert handler.finish_reason == "stop"
        assert handler.model == "google/gemini-2.5-flash"

    @pytest.mark.asyncio
    async def test_skips_bad_and_empty_chunks(self):
        handler = StreamHandler()
        lines = [b": keep-alive comment\n"] + sse(
            delta("A"),
            "{not json",
            {"choices": [{"delta": {}, "finish_reason": None}]},
            delta("B"),
        )
        response = Mock(content=_aiter(lines))

        chunks = await collect(handler.iter_text(response))

        assert chunks == ["A", "B"]
        assert handler.skipped_chunks == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_line", [
        b"data: \xff\xfe\n",
        b'data: {"choices": ["x"]}\n',
        b'data: {"choices": [{"delta": "oops"}]}\n',
        b'data: {"choices": "nope"}\n',
    ])
    async def test_malformed_chunk_is_skipped(self, bad_line):
        handler = StreamHandler()
        lines = sse(delta("A")) + [bad_line] + sse(delta("B"), "[DONE]")

        chunks = await collect(handler.iter_text(Mock(content=_aiter(lines))))

        assert chunks == ["A", "B"]
        assert handler.skipped_chunks == 1

    @pytest.mark.asyncio
    async def test_done_stops_stream(self):
        response = Mock(content=_aiter(sse(delta("A"), "[DONE]", delta("never"))))
        assert await collect(StreamHandler().iter_text(response)) == ["A"]

    @pytest.mark.asyncio
    async def test_error_event_raises(self):
        response = Mock(content=_aiter(sse(delta("A"), {"error": {"message": "quota exceeded"}})))

        received = []
        with pytest.raises(GatewayError, match="quota exceeded"):
            async for chunk in StreamHandler().iter_text(response):
                received.append(chunk)

        assert received == ["A"]


class TestTokenCounter:
    """Test usage accounting."""

    def test_update_and_reset(self):
        counter = TokenCounter()
        counter.update({'prompt_tokens': 10, 'completion_tokens': 5, 'total_tokens': 15})
        counter.update({'total_tokens': 5})

        summary = counter.get_summary()
        assert summary['total_tokens'] == 20
        assert summary['request_count'] == 2
        assert summary['avg_tokens_per_request'] == 10

        counter.reset()
        assert counter.get_summary()['request_count'] == 0


class TestOpenRouterClient:
    """Test the gateway client."""

    def test_requires_api_key(self, settings, monkeypatch):
        monkeypatch.delenv('OPENROUTER_API_KEY', raising=False)
        settings.openrouter_api_key = None
        with pytest.raises(AuthenticationError):
            OpenRouterClient(settings=settings)

    def test_headers(self, client):
        headers = client._get_headers()
        assert headers["Authorization"] == "Bearer sk-or-test-key-123456789"
        assert headers["X-Title"] == "Storyloom"

    def test_build_messages_without_context(self):
        assert OpenRouterClient.build_messages("Hi", None) == [{"role": "user", "content": "Hi"}]
        assert OpenRouterClient.build_messages("Hi", "") == [{"role": "user", "content": "Hi"}]

    def test_build_messages_with_context(self):
        messages = OpenRouterClient.build_messages("Hi", "Bible")
        assert messages[0] == {"role": "system", "content": "Bible"}
        assert messages[1] == {"role": "user", "content": "Hi"}

    @pytest.mark.asyncio
    async def test_ensure_session_and_close(self, client):
        assert client.session is None
        await client.ensure_session()
        assert isinstance(client.session, aiohttp.ClientSession)
        await client.close()
        assert client.session is None

    @pytest.mark.asyncio
    async def test_stream_text_request(self, client, settings):
        settings.proxy_url = "http://127.0.0.1:7897"
        client.proxy_url = settings.proxy_url
        session = FakeSession(FakeResponse(lines=sse(delta("Hello"), delta(" there"), "[DONE]")))
        client._session = session

        chunks = await collect(client.stream_text("Say hi", system_context="Bible", temperature=0.8, max_tokens=100))

        assert chunks == ["Hello", " there"]
        request = session.requests[0]
        assert request["url"] == "https://openrouter.ai/api/v1/chat/completions"
        assert request["proxy"] == "http://127.0.0.1:7897"
        assert request["json"]["stream"] is True
        assert request["json"]["model"] == settings.active_model
        assert request["json"]["max_tokens"] == 100
        assert request["json"]["messages"][0]["role"] == "system"

    @pytest.mark.asyncio
    async def test_stream_text_auth_failure(self, client):
        client._session = FakeSession(FakeResponse(status=401, body={"error": "bad key"}))

        with pytest.raises(AuthenticationError, match="HTTP 401"):
            await collect(client.stream_text("Hi"))

    @pytest.mark.asyncio
    async def test_stream_text_server_failure(self, client):
        client._session = FakeSession(FakeResponse(status=500, body={"error": "boom"}))

        with pytest.raises(GatewayError, match="HTTP 500"):
            await collect(client.stream_text("Hi"))

    @pytest.mark.asyncio
    async def test_stream_text_connection_failure(self, client):
        client._session = FakeSession(error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(GatewayError, match="Connection error"):
            await collect(client.stream_text("Hi"))

    @pytest.mark.asyncio
    async def test_completion(self, client):
        session = FakeSession(FakeResponse(body={
            "choices": [{"message": {"content": "Response"}}],
            "usage": {"prompt_tokens": 10, "completion_tokens": 20, "total_tokens": 30}
        }))
        client._session = session

        response = await client.completion("Test prompt", system_prompt="Be brief")

        assert response == "Response"
        assert session.requests[0]["json"]["stream"] is False
        assert client.token_counter.total_tokens == 30

    @pytest.mark.asyncio
    async def test_completion_error_body(self, client):
        client._session = FakeSession(FakeResponse(body={"error": {"message": "model not found"}}))

        with pytest.raises(GatewayError, match="model not found"):
            await client.completion("Test prompt")

    @pytest.mark.asyncio
    async def test_completion_bad_shape(self, client):
        client._session = FakeSession(FakeResponse(body={"choices": []}))

        with pytest.raises(GatewayError, match="Unexpected completion response"):
            await client.completion("Test prompt")

    @pytest.mark.asyncio
    async def test_completion_non_json_body(self, client):
        client._session = FakeSession(FakeResponse(raw_body="<html>Bad gateway</html>"))

        with pytest.raises(GatewayError, match="Invalid JSON"):
            await client.completion("Test prompt")

    @pytest.mark.asyncio
    async def test_completion_non_object_body(self, client):
        client._session = FakeSession(FakeResponse(raw_body="null"))

        with pytest.raises(GatewayError, match="Unexpected completion response"):
            await client.completion("Test prompt")

    @pytest.mark.asyncio
    async def test_summarize_uses_template(self, client):
        with patch.object(client, 'completion', new_callable=AsyncMock) as mock_comp:
            mock_comp.return_value = "  The hero leaves.  \n"

            summary = await client.summarize("Long chapter text")

        assert summary == "The hero leaves."
        kwargs = mock_comp.call_args.kwargs
        assert kwargs['prompt'] == "Long chapter text"
        assert "summarize" in kwargs['system_prompt']
        assert kwargs['temperature'] == 0.3
