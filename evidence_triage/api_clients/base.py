"""Base API client for the Case.dev REST API with retry logic."""

import logging
from functools import wraps
from typing import Any, Optional, TypeVar

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from ..config.settings import get_settings

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "CASEDEV_API_KEY"


class ConfigurationError(ValueError):
    """Raised when required configuration (the API key) is missing."""


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class RateLimitError(APIError):
    """Raised when rate limit is exceeded."""

    def __init__(self, message: str = "Rate limit exceeded", retry_after: Optional[int] = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class RemoteTimeoutError(APIError):
    """Raised when a request to the API times out."""


M = TypeVar("M", bound=BaseModel)


class BaseAPIClient:
    """Base class for Case.dev API clients with common retry and error handling."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.api_key = api_key
        self.base_url = (base_url or settings.casedev_api_base).rstrip("/")
        self.timeout = timeout or settings.http_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy initialization of HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                headers=self._get_headers(),
                transport=self._transport,
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        """Return headers for API requests."""
        return {
            "Authorization": f"Bearer {self._resolve_api_key()}",
            "Content-Type": "application/json",
        }

    def _resolve_api_key(self) -> str:
        """Resolve API key from init or settings (read at call time)."""
        key = self.api_key or get_settings().casedev_api_key
        if not key:
            raise ConfigurationError(
                f"API key not provided. Set {API_KEY_ENV_VAR} "
                f"environment variable or pass api_key to constructor."
            )
        return key

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BaseAPIClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _handle_response_error(self, response: httpx.Response) -> None:
        """Handle error responses from API."""
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After")
            raise RateLimitError(
                "Rate limited by API",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        elif response.status_code >= 400:
            try:
                error_detail = response.json()
            except ValueError:
                error_detail = response.text
            raise APIError(
                f"API request failed: {response.status_code} - {error_detail}",
                status_code=response.status_code,
            )

    async def _request(
        self,
        method: str,
        endpoint: str,
        json: Optional[dict[str, Any]] = None,
    ) -> Any:
        """Send a request and return the decoded JSON body."""
        response = await self._send(method, endpoint, json=json)
        self._handle_response_error(response)
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise APIError(
                f"API returned a non-JSON response for {method} {endpoint}",
                status_code=response.status_code,
            )

    async def _send(self, method: str, endpoint: str, **kwargs) -> httpx.Response:
        """Send a request, mapping transport failures onto APIError."""
        try:
            return await self.client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            raise RemoteTimeoutError(f"API request timed out: {method} {endpoint}") from e
        except httpx.HTTPError as e:
            raise APIError(f"API request failed: {method} {endpoint} - {e}") from e

    @staticmethod
    def _parse(model: type[M], data: Any) -> M:
        """Validate a response payload; malformed payloads raise APIError."""
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise APIError(
                f"Unexpected {model.__name__} payload from API: {e.error_count()} validation errors"
            ) from e

    @classmethod
    def _parse_list(cls, model: type[M], data: Any, key: str) -> list[M]:
        items = data.get(key) if isinstance(data, dict) else None
        if items is None:
            items = []
        if not isinstance(items, list):
            raise APIError(f"Unexpected {key!r} payload from API: expected a list")
        return [cls._parse(model, item) for item in items]

    @staticmethod
    def with_retry(func):
        """Decorator for adding retry logic to idempotent async methods."""
        @retry(
            stop=stop_after_attempt(3),
            wait=wait_exponential(multiplier=1, min=2, max=30),
            retry=retry_if_exception_type((RemoteTimeoutError, RateLimitError)),
            reraise=True,
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying {func.__name__} after {retry_state.outcome.exception()}"
            ),
        )
        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await func(*args, **kwargs)
        return wrapper
