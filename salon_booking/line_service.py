"""
LINE Messaging API client: push messages, profiles, follower ids
"""
import logging
from typing import List, Optional

import httpx

from . import config
from .exceptions import ExternalServiceError

logger = logging.getLogger(__name__)


class LineApiError(ExternalServiceError):
    """Non-2xx response from the LINE platform"""

    def __init__(self, message: str, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class LineMessagingClient:
    """Thin async wrapper around the LINE bot endpoints we use"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or config.LINE_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else config.LINE_HTTP_TIMEOUT
        # Injectable for tests (httpx.MockTransport)
        self._transport = transport

    def _client(self, access_token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"Authorization": f"Bearer {access_token}"},
            transport=self._transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response, action: str) -> None:
        if response.is_success:
            return
        raise LineApiError(f"LINE {action} failed: {response.status_code} {response.text}", response.status_code)

    async def send_push(self, access_token: str, recipient_id: str, messages: List[dict]) -> dict:
        try:
            async with self._client(access_token) as client:
                response = await client.post("/message/push", json={"to": recipient_id, "messages": messages})
        except httpx.HTTPError as e:
            raise LineApiError(f"LINE push failed: {e}")
        self._raise_for_status(response, "push")
        return response.json() if response.content else {}

    async def get_profile(self, access_token: str, user_id: str) -> dict:
        try:
            async with self._client(access_token) as client:
                response = await client.get(f"/profile/{user_id}")
        except httpx.HTTPError as e:
            raise LineApiError(f"LINE profile lookup failed: {e}")
        self._raise_for_status(response, "profile lookup")
        return response.json()

    async def get_follower_ids(self, access_token: str) -> List[str]:
        """All follower user ids, following the `next` continuation token"""
        user_ids: List[str] = []
        params = {}
        try:
            async with self._client(access_token) as client:
                while True:
                    response = await client.get("/followers/ids", params=params)
                    self._raise_for_status(response, "follower ids")
                    data = response.json()
                    user_ids.extend(data.get("userIds", []))
                    next_token = data.get("next")
                    if not next_token:
                        break
                    params = {"start": next_token}
        except httpx.HTTPError as e:
            raise LineApiError(f"LINE follower ids failed: {e}")
        return user_ids


line_client = LineMessagingClient()


def get_line_client() -> LineMessagingClient:
    return line_client
