"""
Provider API clients.

Components:
- BaseAPIClient: Persistent httpx client and error mapping
- PlivoClient: Voice API (calls)
- DeepgramClient: Speech-to-text API (prerecorded transcription)
- exceptions: ProviderError hierarchy
"""

from callscribe.clients.base_client import BaseAPIClient
from callscribe.clients.deepgram_client import DeepgramClient, create_deepgram_client
from callscribe.clients.exceptions import (
    ProviderConnectionError,
    ProviderError,
    ProviderHTTPError,
    ProviderResponseError,
    ProviderTimeoutError,
)
from callscribe.clients.plivo_client import PlivoClient, create_plivo_client

__all__ = [
    "BaseAPIClient",
    "PlivoClient",
    "DeepgramClient",
    "create_plivo_client",
    "create_deepgram_client",
    "ProviderError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderHTTPError",
    "ProviderResponseError",
]
