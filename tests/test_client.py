"""Tests for the HTTP clients and the retry loop."""

import json

import httpx
import pytest

from autocoding.api.client import (
    ClaudeClient,
    BoltDiyClient,
    RetryPolicy,
    APIError,
    AuthenticationError,
    RateLimitError,
)
from autocoding.core.errors import ConfigurationError

MESSAGE_BODY = {
    'model': 'claude-test',
    'content': [{'type': 'text', 'text': 'Hello '}, {'type': 'text', 'text': 'world'}],
    'usage': {'input_tokens': 12, 'output_tokens': 30}
}


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


def _claude(config, responses):
    """ClaudeClient over a mock transport replaying `responses` in order."""
    calls = []

    def handler(request):
        calls.append(request)
        response = responses[min(len(calls), len(responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(response.status_code, headers=response.headers,
                              content=response.content)

    client = ClaudeClient(config, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    client.retry_policy.sleep = SleepRecorder()
    return client, calls


class TestRetryPolicy:

    def test_delays_double_and_cap(self):
        policy = RetryPolicy()
        assert [policy.delay(n) for n in range(8)] == [1.0, 2.0, 4.0, 8.0, 16.0, 32.0, 60.0, 60.0]

    def test_retry_after_extends_delay(self):
        policy = RetryPolicy()
        assert policy.delay(0, retry_after=5) == 5
        assert policy.delay(0, retry_after=600) == 60.0

    def test_from_config(self):
        policy = RetryPolicy.from_config({'max_retries': 2, 'backoff_initial': 0.5})
        assert policy.max_attempts == 2
        assert policy.delay(1) == 1.0


class TestClaudeClient:

    @pytest.mark.asyncio
    async def test_complete_normalizes_usage(self, live_config):
        client, calls = _claude(live_config, [httpx.Response(200, json=MESSAGE_BODY)])

        result = await client.complete("Write code")

        assert result['text'] == 'Hello world'
        assert result['model'] == 'claude-test'
        assert result['usage'] == {'prompt': 12, 'completion': 30, 'total': 42}
        assert str(calls[0].url) == 'https://claude.test/v1/messages'
        assert calls[0].headers['x-api-key'] == 'test-key'
        payload = json.loads(calls[0].content)
        assert payload['messages'] == [{'role': 'user', 'content': 'Write code'}]
        await client.close()

    @pytest.mark.asyncio
    async def test_server_errors_are_retried(self, live_config):
        client, calls = _claude(live_config, [
            httpx.Response(503),
            httpx.Response(503),
            httpx.Response(200, json=MESSAGE_BODY),
        ])

        result = await client.complete("Write code")

        assert result['usage']['total'] == 42
        assert len(calls) == 3
        assert client.retry_policy.sleep.delays == [1.0, 2.0]
        await client.close()

    @pytest.mark.asyncio
    async def test_authentication_error_is_not_retried(self, live_config):
        client, calls = _claude(live_config, [httpx.Response(401)])

        with pytest.raises(AuthenticationError):
            await client.complete("Write code")
        assert len(calls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self, live_config):
        client, calls = _claude(live_config, [httpx.Response(400, text="bad request")])

        with pytest.raises(APIError) as exc_info:
            await client.complete("Write code")
        assert exc_info.value.status_code == 400
        assert len(calls) == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit_exhausts_attempts(self, live_config):
        client, calls = _claude(live_config, [httpx.Response(429)])

        with pytest.raises(RateLimitError):
            await client.complete("Write code")
        assert len(calls) == 5
        assert client.retry_policy.sleep.delays == [1.0, 2.0, 4.0, 8.0]
        await client.close()

    @pytest.mark.asyncio
    async def test_timeouts_are_retried(self, live_config):
        client, calls = _claude(live_config, [
            httpx.ConnectTimeout("timed out"),
            httpx.Response(200, json=MESSAGE_BODY),
        ])

        result = await client.complete("Write code")
        assert result['text'] == 'Hello world'
        assert len(calls) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_connection_check(self, live_config):
        client, _ = _claude(live_config, [httpx.Response(500)])
        client.retry_policy.max_attempts = 1
        assert await client.test_connection() is False
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body_is_an_api_error(self, live_config):
        client, _ = _claude(live_config, [httpx.Response(200, text="<html>gateway</html>")])

        with pytest.raises(APIError) as exc_info:
            await client.complete("Write code")
        assert exc_info.value.message == "Invalid JSON response"
        assert exc_info.value.status_code == 200
        assert exc_info.value.details == {'body': "<html>gateway</html>"}
        await client.close()

    @pytest.mark.asyncio
    async def test_malformed_content_is_an_api_error(self, live_config):
        client, _ = _claude(live_config, [
            httpx.Response(200, json={'content': ['not a block'], 'usage': {}})
        ])

        with pytest.raises(APIError):
            await client.complete("Write code")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_object_body_is_an_api_error(self, live_config):
        client, _ = _claude(live_config, [httpx.Response(200, json=[1, 2, 3])])

        with pytest.raises(APIError):
            await client.complete("Write code")
        await client.close()

    def test_missing_key(self, live_config):
        live_config['claude']['api_key'] = None
        with pytest.raises(ConfigurationError):
            ClaudeClient(live_config)

    def test_placeholder_key(self, live_config):
        live_config['claude']['api_key'] = 'your_api_key_here'
        with pytest.raises(ConfigurationError):
            ClaudeClient(live_config)


class TestBoltDiyClient:

    @pytest.mark.asyncio
    async def test_execute_posts_task_with_config(self, live_config):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={'success': True, 'result': {'status': 'ok'}})

        client = BoltDiyClient(live_config,
                               httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        body = await client.execute({'taskId': 't1', 'implementation': 'code'})

        assert body['result'] == {'status': 'ok'}
        assert str(seen[0].url) == 'https://bolt.test/functions/v1/bolt-diy'
        assert seen[0].headers['authorization'] == 'Bearer bolt-key'
        sent = json.loads(seen[0].content)
        assert sent['taskId'] == 't1'
        assert sent['config'] == {'timeout': 30.0, 'retries': 5}
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body_is_an_api_error(self, live_config):
        def handler(request):
            return httpx.Response(200, text="upstream proxy error")

        client = BoltDiyClient(live_config,
                               httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(APIError) as exc_info:
            await client.execute({'taskId': 't1'})
        assert exc_info.value.message == "Invalid JSON response"
        await client.close()

    def test_missing_url(self, live_config):
        live_config['bolt_diy']['url'] = None
        with pytest.raises(ConfigurationError):
            BoltDiyClient(live_config)
