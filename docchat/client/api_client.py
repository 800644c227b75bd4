"""
Async HTTP client for the DocChat API, used by the chat session.
"""
import logging
from typing import AsyncIterator, Optional

import httpx

from docchat.config.settings import settings
from docchat.core.errors import ChatRequestError, NotFound, StreamReadError, Unauthorized
from docchat.models.message import MessagePage

logger = logging.getLogger(__name__)


class ChatAPIClient:
    """Client for the chat endpoints; authenticates with the gateway bearer token."""

    def __init__(self,
                 access_token: str,
                 base_url: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None):
        self.access_token = access_token
        self.base_url = (base_url or settings.client.base_url).rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=settings.client.timeout)

    def _get_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    async def aclose(self) -> None:
        await self._client.aclose()

    async def stream_message(self, document_id: str, message: str) -> AsyncIterator[str]:
        """
        POSTs a chat message and yields decoded text as it arrives.

        Raises:
            Unauthorized: 401 response
            ChatRequestError: any other non-200 response
            StreamReadError: transport failure or premature close while reading
        """
        request = self._client.build_request(
            "POST",
            f"{self.base_url}/api/message",
            json={"document_id": document_id, "message": message},
            headers=self._get_headers(),
        )
        try:
            response = await self._client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise ChatRequestError(0, f"Chat request failed: {e}") from e

        try:
            if response.status_code == 401:
                raise Unauthorized("Session is no longer valid")
            if response.status_code != 200:
                raise ChatRequestError(response.status_code)

            # aiter_text decodes incrementally, so multi-byte characters split
            # across network chunks come out whole
            try:
                async for text in response.aiter_text():
                    if text:
                        yield text
            except httpx.HTTPError as e:
                raise StreamReadError(f"Response stream broke off: {e}") from e
        finally:
            await response.aclose()

    async def fetch_messages(self,
                             document_id: str,
                             limit: int,
                             cursor: Optional[str] = None) -> MessagePage:
        params = {"limit": limit}
        if cursor is not None:
            params["cursor"] = cursor

        try:
            response = await self._client.get(
                f"{self.base_url}/api/documents/{document_id}/messages",
                params=params,
                headers=self._get_headers(),
            )
        except httpx.HTTPError as e:
            raise ChatRequestError(0, f"Failed to load messages: {e}") from e
        if response.status_code == 401:
            raise Unauthorized("Session is no longer valid")
        if response.status_code == 404:
            raise NotFound(f"Document {document_id} not found")
        if response.status_code != 200:
            raise ChatRequestError(response.status_code, f"Failed to load messages: {response.status_code}")
        return MessagePage(**response.json())
