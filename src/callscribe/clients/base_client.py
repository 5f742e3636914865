"""
Base HTTP client for provider APIs.

Owns one persistent httpx.AsyncClient per provider (created lazily) and
maps httpx failures onto the ProviderError hierarchy. Concrete clients
only build requests and parse responses.

Does NOT retry: retries and circuit breaking belong to the resilience
layer, which wraps whole client calls.
"""

import json
from typing import Any, Optional

import httpx
import structlog

from callscribe.clients.exceptions import (
    ProviderConnectionError,
    ProviderHTTPError,
    ProviderResponseError,
    ProviderTimeoutError,
)

logger = structlog.get_logger(__name__)


class BaseAPIClient:
    """
    Shared httpx plumbing for provider clients.

    Attributes:
        provider: Provider name used in errors and logs
        base_url: Root URL all request paths are relative to
        timeout: Request timeout in seconds
    """

    provider: str = "provider"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        *,
        headers: Optional[dict[str, str]] = None,
        auth: Optional[httpx.Auth | tuple[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        connection_limits: Optional[httpx.Limits] = None,
    ):
        """
        Initialize client.

        Args:
            base_url: Provider API root
            timeout: Request timeout in seconds
            headers: Default headers sent with every request
            auth: httpx auth (e.g. basic auth tuple)
            transport: Custom transport (httpx.MockTransport in tests)
            connection_limits: httpx pool limits (default: 10 connections)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._headers = headers or {}
        self._auth = auth
        self._transport = transport

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0,
            )
        self._connection_limits = connection_limits
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                limits=self._connection_limits,
                headers=self._headers,
                auth=self._auth,
                transport=self._transport,
                follow_redirects=True,
            )
            logger.debug("Created new httpx AsyncClient", provider=self.provider)
        return self._client

    async def _request(self, method_name: str, http_method: str, path: str, **kwargs: Any) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method_name: Client method name (for errors and logs)
            http_method: HTTP verb
            path: Path relative to ``base_url``
            **kwargs: Passed through to ``httpx.AsyncClient.request``

        Raises:
            ProviderTimeoutError: Request timed out
            ProviderConnectionError: Network failure
            ProviderHTTPError: Non-2xx response
            ProviderResponseError: Body was not valid JSON
        """
        client = await self._get_client()
        context = {"provider": self.provider, "method": method_name}

        try:
            response = await client.request(http_method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ProviderTimeoutError(
                f"{self.provider} API timeout in {method_name} after {self.timeout}s",
                details={"timeout": self.timeout, "error_type": type(e).__name__},
                **context,
            ) from e
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            body = self._error_body(e.response)
            logger.warning(
                "Provider HTTP error",
                provider=self.provider,
                method=method_name,
                status_code=status_code,
            )
            raise ProviderHTTPError(
                f"{self.provider} API error in {method_name}: HTTP {status_code}",
                details={"status": status_code, "error": body},
                status_code=status_code,
                **context,
            ) from e
        except httpx.TransportError as e:
            raise ProviderConnectionError(
                f"{self.provider} API unreachable in {method_name}: {e}",
                details={"error_type": type(e).__name__},
                **context,
            ) from e

        if not response.content:
            return {}
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ProviderResponseError(
                f"Invalid JSON response from {self.provider} in {method_name}",
                details={"parse_error": str(e)},
                status_code=response.status_code,
                **context,
            ) from e

    @staticmethod
    def _error_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    async def close(self) -> None:
        """Close the HTTP client connection."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed provider client connection", provider=self.provider)

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(base_url={self.base_url}, timeout={self.timeout}s)"
