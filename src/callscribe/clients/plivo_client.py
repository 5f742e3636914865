"""
Plivo voice API client.

Thin REST wrapper over https://api.plivo.com/v1/Account/{auth_id}/ using
HTTP basic auth. No business logic: defaults, XML and polling live in
PlivoManager, retries and circuit breaking in ResilientVoiceClient.
"""

from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from callscribe.clients.base_client import BaseAPIClient
from callscribe.clients.exceptions import ProviderError, ProviderResponseError
from callscribe.models.telephony import (
    CallDetails,
    CallList,
    CallUpdate,
    LiveCall,
    MakeCallRequest,
    MakeCallResponse,
    ProviderAck,
)

logger = structlog.get_logger(__name__)


class PlivoClient(BaseAPIClient):
    """
    Plivo REST client.

    API Endpoints (relative to /Account/{auth_id}):
    - POST /Call/: Place an outbound call
    - GET /Call/{uuid}/: Call detail record
    - GET /Call/: List calls (filters as query params)
    - GET /Call/{uuid}/?status=live: Live call status
    - POST /Call/{uuid}/: Transfer a live call
    - DELETE /Call/{uuid}/: Hang up
    """

    provider = "plivo"

    def __init__(
        self,
        auth_id: str,
        auth_token: str,
        base_url: str = "https://api.plivo.com/v1",
        timeout: float = 30.0,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.auth_id = auth_id
        super().__init__(
            f"{base_url.rstrip('/')}/Account/{auth_id}",
            timeout,
            headers={"Content-Type": "application/json"},
            auth=(auth_id, auth_token),
            transport=transport,
        )
        logger.info("Plivo client initialized", base_url=self.base_url, timeout=timeout)

    def _parse(self, model: type, data: Any, method_name: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise ProviderResponseError(
                f"Unexpected plivo response shape in {method_name}",
                details={"errors": e.errors(include_url=False)},
                provider=self.provider,
                method=method_name,
            ) from e

    async def make_call(self, request: MakeCallRequest) -> MakeCallResponse:
        data = await self._request("make_call", "POST", "/Call/", json=request.to_payload())
        response = self._parse(MakeCallResponse, data, "make_call")
        logger.info("Plivo call queued", request_uuid=response.request_uuid, to=request.to)
        return response

    async def get_call_details(self, call_uuid: str) -> CallDetails:
        data = await self._request("get_call_details", "GET", f"/Call/{call_uuid}/")
        return self._parse(CallDetails, data, "get_call_details")

    async def get_calls(self, filters: Optional[dict[str, Any]] = None) -> CallList:
        """
        List calls.

        Args:
            filters: Plivo query filters (call_direction, from_number, to_number,
                end_time__gt, limit, offset, ...). None values are dropped.
        """
        params = {k: v for k, v in (filters or {}).items() if v is not None}
        data = await self._request("get_calls", "GET", "/Call/", params=params)
        return self._parse(CallList, data, "get_calls")

    async def get_live_call(self, call_uuid: str) -> LiveCall:
        data = await self._request(
            "get_live_call", "GET", f"/Call/{call_uuid}/", params={"status": "live"}
        )
        return self._parse(LiveCall, data, "get_live_call")

    async def terminate_call(self, call_uuid: str) -> ProviderAck:
        data = await self._request("terminate_call", "DELETE", f"/Call/{call_uuid}/")
        return self._parse(ProviderAck, data, "terminate_call")

    async def update_call(self, call_uuid: str, updates: CallUpdate) -> ProviderAck:
        data = await self._request(
            "update_call",
            "POST",
            f"/Call/{call_uuid}/",
            json=updates.model_dump(exclude_none=True),
        )
        return self._parse(ProviderAck, data, "update_call")

    async def validate_credentials(self) -> bool:
        """
        Check the credentials with a lightweight account lookup.

        Returns:
            True if Plivo accepted the credentials, False otherwise
        """
        try:
            await self._request("validate_credentials", "GET", "/")
            return True
        except ProviderError as e:
            logger.warning("Plivo credential check failed", error=str(e))
            return False


def create_plivo_client(
    auth_id: str,
    auth_token: str,
    base_url: str = "https://api.plivo.com/v1",
    timeout: float = 30.0,
) -> PlivoClient:
    """
    Factory function to create a PlivoClient.

    Raises:
        ValueError: If auth id or token is missing
    """
    if not auth_id or not auth_token:
        raise ValueError("Plivo Auth ID and Auth Token are required")
    return PlivoClient(auth_id, auth_token, base_url=base_url, timeout=timeout)
