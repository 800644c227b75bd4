from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from docchat.models.message import ChatMessage, MessagePage


class CachedMessage(BaseModel):
    id: str
    text: str
    is_user_message: bool
    created_at: datetime
    # Set only on optimistic entries; ties them to one outstanding send
    correlation_id: Optional[str] = None

    @property
    def is_local(self) -> bool:
        return self.correlation_id is not None

    @classmethod
    def from_server(cls, msg: ChatMessage) -> "CachedMessage":
        return cls(
            id=msg.id,
            text=msg.text,
            is_user_message=msg.is_user_message,
            created_at=msg.created_at
        )


class CachedPage(BaseModel):
    messages: List[CachedMessage]        # newest first
    next_cursor: Optional[str] = None
    # Created client-side to hold optimistic entries before any server page
    local: bool = False


class ConversationCache:
    """
    Client-side, paginated view of one document's conversation.
    pages[0] holds the newest messages. Optimistic entries live only at the
    head of pages[0]; a server refresh replaces the whole log, so server
    records always supersede local ones and are never merged field by field.
    """

    def __init__(self):
        self.pages: List[CachedPage] = []

    def messages(self) -> List[CachedMessage]:
        return [m for page in self.pages for m in page.messages]

    def insert_local(self, message: CachedMessage) -> None:
        if not self.pages:
            self.pages.append(CachedPage(messages=[], local=True))
        self.pages[0].messages.insert(0, message)

    def find(self, message_id: str) -> Optional[CachedMessage]:
        for m in self.messages():
            if m.id == message_id:
                return m
        return None

    def upsert_placeholder(self, placeholder: CachedMessage) -> None:
        """Inserts the placeholder once, then only replaces its text."""
        existing = self.find(placeholder.id)
        if existing is None:
            self.insert_local(placeholder)
        else:
            existing.text = placeholder.text

    def discard(self, correlation_id: str) -> None:
        for page in self.pages:
            page.messages = [m for m in page.messages if m.correlation_id != correlation_id]
        self.pages = [p for p in self.pages if p.messages or not p.local]

    def replace_with_server(self, pages: List[MessagePage]) -> None:
        self.pages = [
            CachedPage(
                messages=[CachedMessage.from_server(m) for m in page.messages],
                next_cursor=page.next_cursor
            )
            for page in pages
        ]

    def append_server_page(self, page: MessagePage) -> None:
        self.pages.append(CachedPage(
            messages=[CachedMessage.from_server(m) for m in page.messages],
            next_cursor=page.next_cursor
        ))

    @property
    def next_cursor(self) -> Optional[str]:
        return self.pages[-1].next_cursor if self.pages else None
