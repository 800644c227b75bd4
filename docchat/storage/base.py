from abc import ABC, abstractmethod
from typing import List, Optional
from docchat.models.document import DocumentRecord, DocumentFilter
from docchat.models.message import ChatMessage, MessageFilter, SortOrder
from docchat.models.passage import Passage, RetrievedPassage

class VectorStore(ABC):
    """Passages are partitioned into namespaces, one per document id."""

    @abstractmethod
    def upsert(self, namespace: str, passages: List[Passage]) -> None:
        pass

    @abstractmethod
    def replace_namespace(self, namespace: str, passages: List[Passage]) -> None:
        """Clears the namespace, then writes `passages` into it."""
        pass

    @abstractmethod
    def query(self, namespace: str, vector: List[float], top_k: int) -> List[RetrievedPassage]:
        pass

    @abstractmethod
    def delete_namespace(self, namespace: str) -> None:
        pass

    @abstractmethod
    def count(self, namespace: str) -> int:
        pass

class DocumentRepository(ABC):
    @abstractmethod
    def find_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        pass

    @abstractmethod
    def find_many(self,
                  filters: DocumentFilter,
                  order: SortOrder = SortOrder.desc,
                  limit: Optional[int] = None) -> List[DocumentRecord]:
        pass

    @abstractmethod
    def create(self, record: DocumentRecord) -> DocumentRecord:
        """Raises DuplicateRecord if (owner_id, storage_key) already exists."""
        pass

    @abstractmethod
    def update(self, record: DocumentRecord) -> DocumentRecord:
        pass

class MessageRepository(ABC):
    @abstractmethod
    def find_by_id(self, message_id: str) -> Optional[ChatMessage]:
        pass

    @abstractmethod
    def find_many(self,
                  filters: MessageFilter,
                  order: SortOrder = SortOrder.asc,
                  limit: Optional[int] = None) -> List[ChatMessage]:
        """Ordered by created_at."""
        pass

    @abstractmethod
    def create(self, message: ChatMessage) -> ChatMessage:
        pass

    @abstractmethod
    def update(self, message: ChatMessage) -> ChatMessage:
        pass
