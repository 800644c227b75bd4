from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, Field

from docchat.core.errors import InvalidStatusTransition


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadStatus(str, Enum):
    processing = "PROCESSING"
    success = "SUCCESS"
    failed = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not UploadStatus.processing


class UploadCompleteEvent(BaseModel):
    owner_id: str
    storage_key: str
    name: str
    url: str                         # retrieval address of the raw bytes


class DocumentRecord(BaseModel):
    id: str
    storage_key: str
    name: str
    url: str
    owner_id: str
    status: UploadStatus = UploadStatus.processing
    page_count: int | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def transition(self, status: UploadStatus, **changes) -> "DocumentRecord":
        """
        Returns a copy moved to `status`.
        Only PROCESSING -> SUCCESS and PROCESSING -> FAILED are allowed.
        """
        if self.status.is_terminal or status is UploadStatus.processing:
            raise InvalidStatusTransition(
                f"Document {self.id}: {self.status.value} -> {status.value} is not allowed"
            )
        return self.model_copy(update={"status": status, "updated_at": utcnow(), **changes})


class DocumentFilter(BaseModel):
    owner_id: str | None = None
    storage_key: str | None = None
    status: UploadStatus | None = None

    def matches(self, doc: DocumentRecord) -> bool:
        return (
            (self.owner_id is None or doc.owner_id == self.owner_id)
            and (self.storage_key is None or doc.storage_key == self.storage_key)
            and (self.status is None or doc.status == self.status)
        )
