# src/autocoding/api/client.py
import asyncio
from typing import Dict, Any, List, Optional
import logging

import httpx

from autocoding.core.errors import AutoCodingError, ConfigurationError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class RetryPolicy:
    """Exponential backoff: initial delay, doubling, capped, bounded attempts."""

    def __init__(self, max_attempts: int = 5, initial: float = 1.0, maximum: float = 60.0,
                 sleep=asyncio.sleep):
        self.max_attempts = max(1, int(max_attempts))
        self.initial = initial
        self.maximum = maximum
        self.sleep = sleep

    @classmethod
    def from_config(cls, app_config: Dict[str, Any]) -> 'RetryPolicy':
        return cls(
            max_attempts=app_config.get('max_retries', 5),
            initial=app_config.get('backoff_initial', 1.0),
            maximum=app_config.get('backoff_max', 60.0)
        )

    def delay(self, attempt: int, retry_after: Optional[float] = None) -> float:
        """Delay before the next attempt; attempt is 0-based."""
        delay = min(self.initial * (2 ** attempt), self.maximum)
        if retry_after:
            delay = min(max(delay, retry_after), self.maximum)
        return delay


async def send_with_retry(client: httpx.AsyncClient, method: str, url: str,
                          policy: RetryPolicy, **kwargs) -> httpx.Response:
    """Send a request, retrying timeouts, transport errors, 429 and 5xx."""
    last_error: Optional[UpstreamError] = None

    for attempt in range(policy.max_attempts):
        try:
            response = await client.request(method, url, **kwargs)
        except httpx.TimeoutException:
            last_error = APIError("Request timeout")
            retry_after = None
        except httpx.RequestError as e:
            last_error = APIError(f"Request failed: {str(e)}")
            retry_after = None
        else:
            if response.status_code < 400:
                return response
            if response.status_code in (401, 403):
                raise AuthenticationError("Invalid API key", status_code=response.status_code)
            retry_after = _retry_after(response)
            if response.status_code == 429:
                last_error = RateLimitError("Rate limit exceeded", retry_after=retry_after)
            else:
                last_error = APIError(f"API error: {response.status_code}", response.status_code,
                                      {'body': response.text[:200]})
            if response.status_code not in RETRYABLE_STATUS:
                raise last_error

        if attempt + 1 < policy.max_attempts:
            delay = policy.delay(attempt, retry_after)
            logger.warning(f"{method} {url} failed ({last_error}), retrying in {delay:.1f}s "
                           f"(attempt {attempt + 1}/{policy.max_attempts})")
            await policy.sleep(delay)

    logger.error(f"{method} {url} failed after {policy.max_attempts} attempts: {last_error}")
    raise last_error


def decode_json(response: httpx.Response) -> Dict[str, Any]:
    """Decode a successful response body, rejecting anything that is not a JSON object."""
    try:
        data = response.json()
    except ValueError:
        raise APIError("Invalid JSON response", response.status_code,
                       {'body': response.text[:200]})
    if not isinstance(data, dict):
        raise APIError("Unexpected response shape", response.status_code,
                       {'body': response.text[:200]})
    return data


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class ClaudeClient:
    """Client for the Anthropic Messages API."""

    def __init__(self, config: Dict[str, Any], http_client: Optional[httpx.AsyncClient] = None):
        claude = config.get('claude', {})
        app = config.get('app', {})

        self.api_key = claude.get('api_key')
        if not self.api_key or self.api_key == "your_api_key_here":
            raise ConfigurationError(
                "ANTHROPIC_API_KEY not configured. Please set it in .env file or config.yaml"
            )

        self.base_url = claude.get('base_url', 'https://api.anthropic.com/v1').rstrip('/')
        self.model = claude.get('model', 'claude-3-sonnet-20240229')
        self.max_tokens = claude.get('max_tokens', 10000)
        self.temperature = claude.get('temperature', 0.7)
        self.headers = {
            "x-api-key": self.api_key,
            "anthropic-version": claude.get('anthropic_version', '2023-06-01'),
            "content-type": "application/json"
        }
        self.retry_policy = RetryPolicy.from_config(app)
        self.client = http_client or httpx.AsyncClient(timeout=app.get('request_timeout', 30.0))

    async def create_message(
            self,
            messages: List[Dict[str, str]],
            max_tokens: int = None,
            temperature: float = None,
            system: str = None
    ) -> Dict[str, Any]:
        """Send a Messages API request and return the decoded body."""
        payload = {
            "model": self.model,
            "max_tokens": max_tokens if max_tokens is not None else self.max_tokens,
            "temperature": temperature if temperature is not None else self.temperature,
            "messages": messages
        }
        if system:
            payload["system"] = system

        response = await send_with_retry(
            self.client, "POST", f"{self.base_url}/messages", self.retry_policy,
            headers=self.headers, json=payload
        )
        return decode_json(response)

    async def complete(self, prompt: str, **kwargs) -> Dict[str, Any]:
        """Single-turn completion. Returns text plus normalized token usage."""
        data = await self.create_message([{"role": "user", "content": prompt}], **kwargs)

        content = data.get('content') or []
        usage = data.get('usage') or {}
        if (not isinstance(content, list) or not isinstance(usage, dict)
                or not all(isinstance(block, dict) for block in content)):
            raise APIError("Malformed message response", details={'keys': sorted(data)})

        text = ''.join(
            str(block.get('text', '')) for block in content
            if block.get('type', 'text') == 'text'
        )
        prompt_tokens = usage.get('input_tokens') or 0
        completion_tokens = usage.get('output_tokens') or 0
        if not isinstance(prompt_tokens, int) or not isinstance(completion_tokens, int):
            raise APIError("Malformed usage in message response", details={'usage': usage})

        return {
            'text': text,
            'model': data.get('model', self.model),
            'usage': {
                'prompt': prompt_tokens,
                'completion': completion_tokens,
                'total': prompt_tokens + completion_tokens
            }
        }

    async def test_connection(self) -> bool:
        """Test if API connection works"""
        try:
            await self.create_message(
                [{"role": "user", "content": "Hello"}], max_tokens=10
            )
            return True
        except AuthenticationError:
            raise
        except UpstreamError as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class BoltDiyClient:
    """Client for the bolt.diy execution function."""

    def __init__(self, config: Dict[str, Any], http_client: Optional[httpx.AsyncClient] = None):
        bolt = config.get('bolt_diy', {})
        app = config.get('app', {})

        self.url = bolt.get('url')
        self.api_key = bolt.get('api_key')
        if not self.url or not self.api_key:
            raise ConfigurationError("bolt.diy URL and API key are required outside dev mode")

        self.url = self.url.rstrip('/')
        self.timeout = app.get('request_timeout', 30.0)
        self.retry_policy = RetryPolicy.from_config(app)
        self.headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        self.client = http_client or httpx.AsyncClient(timeout=self.timeout)

    async def execute(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """POST a task to the execution function and return its JSON body."""
        body = dict(payload)
        body.setdefault('config', {
            'timeout': self.timeout,
            'retries': self.retry_policy.max_attempts
        })

        response = await send_with_retry(
            self.client, "POST", f"{self.url}/functions/v1/bolt-diy", self.retry_policy,
            headers=self.headers, json=body
        )
        return decode_json(response)

    async def close(self):
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# Error classes
class UpstreamError(AutoCodingError):
    """Base exception for external API failures."""
    code = "UPSTREAM_ERROR"
    http_status = 503

    def __init__(self, message, status_code=None, details=None):
        self.status_code = status_code
        super().__init__(message, details)


class AuthenticationError(UpstreamError):
    """Raised when API authentication fails."""
    code = "AUTHENTICATION_ERROR"
    http_status = 401


class RateLimitError(UpstreamError):
    """Raised when rate limit is exceeded."""
    code = "RATE_LIMITED"
    http_status = 429

    def __init__(self, message, retry_after=None):
        self.retry_after = retry_after
        super().__init__(message, 429, {'retryAfter': retry_after} if retry_after else None)


class APIError(UpstreamError):
    """Raised for general API errors."""
    pass
