from datetime import datetime
from enum import Enum
from pydantic import BaseModel, Field

from docchat.models.document import utcnow


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class ChatMessage(BaseModel):
    id: str
    text: str
    is_user_message: bool
    document_id: str
    user_id: str
    created_at: datetime = Field(default_factory=utcnow)


class MessageFilter(BaseModel):
    document_id: str
    user_id: str | None = None
    before: tuple[datetime, str] | None = None     # (created_at, id) page anchor, exclusive

    def matches(self, msg: ChatMessage) -> bool:
        return (
            msg.document_id == self.document_id
            and (self.user_id is None or msg.user_id == self.user_id)
            and (self.before is None or (msg.created_at, msg.id) < self.before)
        )


class SendMessageRequest(BaseModel):
    document_id: str = Field(min_length=1)
    message: str = Field(min_length=1)


class MessagePage(BaseModel):
    messages: list[ChatMessage]          # newest first
    next_cursor: str | None = None       # id of the oldest message returned
