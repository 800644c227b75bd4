import os
import json
import logging
import threading
from typing import Callable, Dict, Generic, List, Optional, Type, TypeVar
from pydantic import BaseModel
from docchat.core.errors import DuplicateRecord, NotFound
from docchat.models.document import DocumentRecord, DocumentFilter
from docchat.models.message import ChatMessage, MessageFilter, SortOrder
from docchat.storage.base import DocumentRepository, MessageRepository

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


class LocalRecordStore(Generic[R]):
    """
    Dict-backed record store keyed by `id`.
    When `path` is given, every write is flushed to a JSON file on local disk
    and the file is loaded on startup. An empty path keeps records in memory only.
    """

    def __init__(self, model: Type[R], path: str = ""):
        self.model = model
        self.path = path
        self._records: Dict[str, R] = {}
        self._lock = threading.Lock()
        if self.path:
            os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
            self._load()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        self._records = {rid: self.model(**r) for rid, r in data.items()}
        logger.info(f"Loaded {len(self._records)} {self.model.__name__} records from {self.path}")

    def _flush(self) -> None:
        if not self.path:
            return
        data = {rid: r.model_dump(mode="json") for rid, r in self._records.items()}
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def get(self, record_id: str) -> Optional[R]:
        with self._lock:
            return self._records.get(record_id)

    def select(self,
               predicate: Callable[[R], bool],
               sort_key: Callable[[R], object],
               descending: bool,
               limit: Optional[int]) -> List[R]:
        with self._lock:
            rows = [r for r in self._records.values() if predicate(r)]
        rows.sort(key=sort_key, reverse=descending)
        return rows[:limit] if limit is not None else rows

    def insert(self, record: R, unique: Optional[Callable[[R], bool]] = None) -> R:
        with self._lock:
            if record.id in self._records:
                raise DuplicateRecord(f"{self.model.__name__} {record.id} already exists")
            if unique is not None and any(unique(r) for r in self._records.values()):
                raise DuplicateRecord(f"{self.model.__name__} conflicts with an existing record")
            self._records[record.id] = record
            self._flush()
        return record

    def replace(self, record: R) -> R:
        with self._lock:
            if record.id not in self._records:
                raise NotFound(f"{self.model.__name__} {record.id} does not exist")
            self._records[record.id] = record
            self._flush()
        return record


class LocalDocumentRepository(DocumentRepository):
    def __init__(self, path: str = ""):
        self.store = LocalRecordStore(DocumentRecord, path)

    def find_by_id(self, document_id: str) -> Optional[DocumentRecord]:
        return self.store.get(document_id)

    def find_many(self,
                  filters: DocumentFilter,
                  order: SortOrder = SortOrder.desc,
                  limit: Optional[int] = None) -> List[DocumentRecord]:
        return self.store.select(
            filters.matches,
            sort_key=lambda d: d.created_at,
            descending=order is SortOrder.desc,
            limit=limit
        )

    def create(self, record: DocumentRecord) -> DocumentRecord:
        # One document per (owner, storage key)
        return self.store.insert(
            record,
            unique=lambda d: d.owner_id == record.owner_id and d.storage_key == record.storage_key
        )

    def update(self, record: DocumentRecord) -> DocumentRecord:
        return self.store.replace(record)


class LocalMessageRepository(MessageRepository):
    def __init__(self, path: str = ""):
        self.store = LocalRecordStore(ChatMessage, path)

    def find_by_id(self, message_id: str) -> Optional[ChatMessage]:
        return self.store.get(message_id)

    def find_many(self,
                  filters: MessageFilter,
                  order: SortOrder = SortOrder.asc,
                  limit: Optional[int] = None) -> List[ChatMessage]:
        return self.store.select(
            filters.matches,
            sort_key=lambda m: (m.created_at, m.id),
            descending=order is SortOrder.desc,
            limit=limit
        )

    def create(self, message: ChatMessage) -> ChatMessage:
        return self.store.insert(message)

    def update(self, message: ChatMessage) -> ChatMessage:
        return self.store.replace(message)
