"""
Custom exceptions for the provider client layer.

These exceptions give the resilience layer enough structure to decide
what to do with a failed call: the voice facade treats most 4xx
ProviderHTTPErrors as terminal, everything else is retried.
"""

from typing import Optional


class ProviderError(Exception):
    """
    Base exception for all provider client errors.

    Attributes:
        message: Human-readable description
        details: Structured context for logging
        provider: "plivo" or "deepgram"
        method: Client method where the error occurred
        status_code: HTTP status, when the provider answered
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        *,
        provider: Optional[str] = None,
        method: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.provider = provider
        self.method = method
        self.status_code = status_code


class ProviderConnectionError(ProviderError):
    """
    Raised when the provider could not be reached.

    DNS failures, refused connections, dropped sockets. Always retryable.
    """
    pass


class ProviderTimeoutError(ProviderConnectionError):
    """Raised when the HTTP request exceeded the client timeout."""
    pass


class ProviderHTTPError(ProviderError):
    """
    Raised when the provider answered with a non-2xx status.

    ``details["error"]`` carries the provider's error body when it was JSON.
    """

    @property
    def is_client_error(self) -> bool:
        return self.status_code is not None and 400 <= self.status_code < 500


class ProviderResponseError(ProviderError):
    """Raised when a 2xx response could not be parsed into the expected shape."""
    pass
