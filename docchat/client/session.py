"""
Client-side chat session for one document.

Shows the user's message immediately, streams the assistant's answer into a
single placeholder, and reconciles with the server once the answer is saved,
or rolls everything back if the send fails.
"""
import asyncio
import logging
import uuid
from enum import Enum
from typing import Callable, Optional

from docchat.client.api_client import ChatAPIClient
from docchat.client.conversation import CachedMessage, ConversationCache
from docchat.config.settings import settings
from docchat.core.errors import DocChatError, SendInProgress, StreamReadError, Unauthorized
from docchat.models.document import utcnow

logger = logging.getLogger(__name__)

SEND_ERROR_NOTICE = "There was a problem sending this message. Please refresh this page and try again."


class SendState(str, Enum):
    idle = "idle"
    optimistic = "optimistic"
    streaming = "streaming"
    settled = "settled"
    rolled_back = "rolled_back"


def _log_notice(message: str) -> None:
    logger.warning(message)


def _log_unauthorized() -> None:
    logger.warning("Session expired, re-authentication required")


class ChatSession:
    """Single-threaded (asyncio) reconciliation engine for one conversation."""

    def __init__(self,
                 document_id: str,
                 api: ChatAPIClient,
                 page_size: Optional[int] = None,
                 on_error: Callable[[str], None] = _log_notice,
                 on_unauthorized: Callable[[], None] = _log_unauthorized):
        self.document_id = document_id
        self.api = api
        self.page_size = page_size or settings.retrieval.messages_page_size
        self.on_error = on_error
        self.on_unauthorized = on_unauthorized

        self.cache = ConversationCache()
        self.input_text = ""
        self.is_loading = False
        self.state = SendState.idle
        self.refresh_task: Optional[asyncio.Task] = None
        self._sending = False

    def set_input(self, text: str) -> None:
        self.input_text = text

    async def load(self) -> None:
        """Loads the newest page from the server, replacing the cached log."""
        page = await self.api.fetch_messages(self.document_id, self.page_size)
        self.cache.replace_with_server([page])

    async def load_more(self) -> bool:
        cursor = self.cache.next_cursor
        if cursor is None:
            return False
        page = await self.api.fetch_messages(self.document_id, self.page_size, cursor=cursor)
        self.cache.append_server_page(page)
        return True

    def schedule_refresh(self) -> asyncio.Task:
        self.refresh_task = asyncio.create_task(self._refresh())
        return self.refresh_task

    async def _refresh(self) -> None:
        # Refetch as many pages as are currently shown
        wanted = max(1, sum(1 for p in self.cache.pages if not p.local))
        pages = []
        cursor = None
        try:
            for _ in range(wanted):
                page = await self.api.fetch_messages(self.document_id, self.page_size, cursor=cursor)
                pages.append(page)
                cursor = page.next_cursor
                if cursor is None:
                    break
        except Unauthorized:
            self.on_unauthorized()
            return
        except DocChatError as e:
            logger.warning(f"Conversation refresh failed for {self.document_id}: {e}")
            return
        self.cache.replace_with_server(pages)

    async def _cancel_refresh(self) -> None:
        task = self.refresh_task
        self.refresh_task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait([task])

    async def submit(self, text: Optional[str] = None) -> bool:
        """
        Sends `text` (default: the current input). Returns True when the
        answer streamed to completion, False when the send was rolled back.

        Raises:
            SendInProgress: another send for this session is outstanding
        """
        if self._sending:
            raise SendInProgress("A message is already being sent")

        message = self.input_text if text is None else text
        if not message.strip():
            return False

        self._sending = True
        correlation_id = uuid.uuid4().hex
        backup_message = message
        try:
            try:
                # Idle -> Optimistic
                self.input_text = ""
                await self._cancel_refresh()
                self.cache.insert_local(CachedMessage(
                    id=str(uuid.uuid4()),
                    text=message,
                    is_user_message=True,
                    created_at=utcnow(),
                    correlation_id=correlation_id
                ))
                self.is_loading = True
                self.state = SendState.optimistic

                await self._consume(correlation_id, message)
            except asyncio.CancelledError:
                self._rollback(correlation_id, backup_message)
                raise
            except Unauthorized:
                self._rollback(correlation_id, backup_message)
                self.on_unauthorized()
                return False
            except DocChatError as e:
                logger.warning(f"Send failed for {self.document_id} ({e.kind}): {e}")
                self._rollback(correlation_id, backup_message)
                self.on_error(SEND_ERROR_NOTICE)
                return False

            # Streaming -> Settled
            self.is_loading = False
            self.state = SendState.settled
            self.schedule_refresh()
            return True
        finally:
            self._sending = False

    async def _consume(self, correlation_id: str, message: str) -> None:
        placeholder_id = f"assistant-{correlation_id}"
        accumulated = ""
        async for chunk in self.api.stream_message(self.document_id, message):
            accumulated += chunk
            self.state = SendState.streaming
            self.cache.upsert_placeholder(CachedMessage(
                id=placeholder_id,
                text=accumulated,
                is_user_message=False,
                created_at=utcnow(),
                correlation_id=correlation_id
            ))
        if not accumulated:
            raise StreamReadError("Response ended before any text arrived")

    def _rollback(self, correlation_id: str, backup_message: str) -> None:
        self.cache.discard(correlation_id)
        self.input_text = backup_message
        self.is_loading = False
        self.state = SendState.rolled_back
