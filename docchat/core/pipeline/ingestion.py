import logging
import uuid
from typing import Callable, List, Optional
from docchat.config.plans import PlanLimits
from docchat.core.errors import (
    DocChatError,
    DuplicateRecord,
    EmptyContentError,
    QuotaExceeded,
    VectorIndexError,
)
from docchat.core.embed.embedder import Embedder
from docchat.core.fetch.downloader import Downloader
from docchat.core.parse.pdf_parser import PDFParser
from docchat.models.document import DocumentFilter, DocumentRecord, UploadCompleteEvent, UploadStatus
from docchat.models.passage import PageText, Passage
from docchat.storage.base import DocumentRepository, VectorStore
from docchat.storage.qdrant_store import passage_id

logger = logging.getLogger(__name__)

class IngestionPipeline:
    """
    Orchestrates the ingestion of one uploaded document:
    create record -> fetch -> extract pages -> plan check -> embed -> index -> status
    """

    def __init__(self,
                 documents: DocumentRepository,
                 vector_store: VectorStore,
                 embedder: Optional[Embedder] = None,
                 downloader: Optional[Downloader] = None,
                 parser: Optional[PDFParser] = None):
        self.documents = documents
        self.vector_store = vector_store
        self.embedder = embedder or Embedder()
        self.downloader = downloader or Downloader()
        self.parser = parser or PDFParser()

    def run(self,
            event: UploadCompleteEvent,
            plan: PlanLimits,
            progress_callback: Optional[Callable[[int, str], None]] = None) -> DocumentRecord:
        """
        Runs the full ingestion pipeline for a single upload-complete event.
        Returns the final record. A repeated event for the same owner and
        storage key returns the existing record and does nothing else.
        """
        def update_progress(progress: int, message: str):
            if progress_callback:
                progress_callback(progress, message)
            logger.info(f"[{event.storage_key}] {progress}%: {message}")

        record = self._create_record(event)
        if record is None:
            existing = self._find_existing(event)
            logger.info(f"Document for key {event.storage_key} already exists ({existing.id}), skipping")
            return existing

        doc_id = record.id
        try:
            update_progress(5, "Fetching file")
            data = self.downloader.fetch(record.url)

            update_progress(20, "Extracting page text")
            pages = self.parser.parse_pages(data)
            readable = [p for p in pages if p.text.strip()]
            if not readable:
                raise EmptyContentError("PDF contains no readable text content")
            update_progress(35, f"Extracted {len(pages)} pages")

            if len(pages) > plan.pages_per_pdf:
                raise QuotaExceeded(
                    f"{len(pages)} pages exceeds the {plan.name} plan limit of {plan.pages_per_pdf}"
                )

            update_progress(50, "Generating embeddings")
            passages = self._embed(doc_id, readable)

            update_progress(80, "Indexing passages")
            self._index(doc_id, passages)

            record = self.documents.update(
                record.transition(UploadStatus.success, page_count=len(pages))
            )
            update_progress(100, f"Indexed {len(passages)} passages")
            return record

        except Exception as e:
            kind = e.kind if isinstance(e, DocChatError) else "error"
            if isinstance(e, DocChatError):
                logger.error(f"Ingestion failed for {doc_id} ({kind}): {e}")
            else:
                logger.exception(f"Ingestion failed for {doc_id}")
            self._mark_failed(record)
            if progress_callback:
                progress_callback(-1, kind) # Use -1 to indicate failure
            raise

    def _create_record(self, event: UploadCompleteEvent) -> Optional[DocumentRecord]:
        if self._find_existing(event) is not None:
            return None
        try:
            return self.documents.create(DocumentRecord(
                id=str(uuid.uuid4()),
                storage_key=event.storage_key,
                name=event.name,
                url=event.url,
                owner_id=event.owner_id
            ))
        except DuplicateRecord:
            # Lost a race with a concurrent event for the same upload
            return None

    def _find_existing(self, event: UploadCompleteEvent) -> Optional[DocumentRecord]:
        found = self.documents.find_many(
            DocumentFilter(owner_id=event.owner_id, storage_key=event.storage_key),
            limit=1
        )
        return found[0] if found else None

    def _embed(self, doc_id: str, pages: List[PageText]) -> List[Passage]:
        passages = [
            Passage(
                id=passage_id(doc_id, p.page_number),
                document_id=doc_id,
                page_number=p.page_number,
                text=p.text
            )
            for p in pages
        ]
        try:
            return self.embedder.embed_passages(passages)
        except Exception as e:
            raise VectorIndexError(f"Embedding failed: {e}") from e

    def _index(self, doc_id: str, passages: List[Passage]) -> None:
        try:
            self.vector_store.replace_namespace(doc_id, passages)
        except Exception as e:
            raise VectorIndexError(f"Vector index write failed: {e}") from e

    def _mark_failed(self, record: DocumentRecord) -> None:
        current = self.documents.find_by_id(record.id) or record
        if current.status.is_terminal:
            return
        self.documents.update(current.transition(UploadStatus.failed))
