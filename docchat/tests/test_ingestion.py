from unittest.mock import MagicMock

import pytest

from conftest import make_pdf
from docchat.config.plans import get_plan_limits
from docchat.core.errors import (
    EmptyContentError,
    FetchError,
    InvalidStatusTransition,
    QuotaExceeded,
    VectorIndexError,
)
from docchat.core.fetch.downloader import Downloader
from docchat.core.pipeline.ingestion import IngestionPipeline
from docchat.core.parse.pdf_parser import PDFParser
from docchat.models.document import DocumentFilter, DocumentRecord, UploadCompleteEvent, UploadStatus

FREE = get_plan_limits("free")


def _event(key: str = "key-1", owner: str = "user-1") -> UploadCompleteEvent:
    return UploadCompleteEvent(
        owner_id=owner,
        storage_key=key,
        name="report.pdf",
        url=f"https://files.example.com/f/{key}",
    )


def _downloader(data: bytes) -> MagicMock:
    downloader = MagicMock(spec=Downloader)
    downloader.fetch.return_value = data
    return downloader


def _pipeline(documents, vector_store, embedder, data: bytes) -> IngestionPipeline:
    return IngestionPipeline(
        documents=documents,
        vector_store=vector_store,
        embedder=embedder,
        downloader=_downloader(data),
        parser=PDFParser(),
    )


def test_three_page_free_upload_succeeds(documents, vector_store, fake_embedder):
    data = make_pdf(["Revenue grew in the first quarter.",
                     "Costs were flat across regions.",
                     "The outlook for next year is positive."])
    pipeline = _pipeline(documents, vector_store, fake_embedder, data)

    record = pipeline.run(_event(), FREE)

    assert record.status == UploadStatus.success
    assert record.page_count == 3
    assert documents.find_by_id(record.id).status == UploadStatus.success
    assert vector_store.count(record.id) == 3


def test_thirty_page_free_upload_fails(documents, vector_store, fake_embedder):
    data = make_pdf([f"Chapter {i} discusses topic number {i}." for i in range(1, 31)])
    pipeline = _pipeline(documents, vector_store, fake_embedder, data)

    with pytest.raises(QuotaExceeded):
        pipeline.run(_event(), FREE)

    [record] = documents.find_many(DocumentFilter(owner_id="user-1"))
    assert record.status == UploadStatus.failed
    assert vector_store.count(record.id) == 0


def test_pro_plan_allows_larger_documents(documents, vector_store, fake_embedder):
    data = make_pdf([f"Section {i} body text." for i in range(1, 11)])
    pipeline = _pipeline(documents, vector_store, fake_embedder, data)

    record = pipeline.run(_event(), get_plan_limits("pro"))

    assert record.status == UploadStatus.success
    assert vector_store.count(record.id) == 10


def test_document_without_text_fails(documents, vector_store, fake_embedder):
    pipeline = _pipeline(documents, vector_store, fake_embedder, make_pdf(["", ""]))

    with pytest.raises(EmptyContentError):
        pipeline.run(_event(), FREE)

    [record] = documents.find_many(DocumentFilter(owner_id="user-1"))
    assert record.status == UploadStatus.failed


def test_unreadable_bytes_fail_as_empty_content(documents, vector_store, fake_embedder):
    pipeline = _pipeline(documents, vector_store, fake_embedder, b"not a pdf at all")

    with pytest.raises(EmptyContentError):
        pipeline.run(_event(), FREE)


def test_fetch_failure_marks_document_failed(documents, vector_store, fake_embedder):
    downloader = MagicMock(spec=Downloader)
    downloader.fetch.side_effect = FetchError("Failed to fetch file: HTTP 404")
    pipeline = IngestionPipeline(documents, vector_store, embedder=fake_embedder, downloader=downloader)

    progress = []
    with pytest.raises(FetchError):
        pipeline.run(_event(), FREE, progress_callback=lambda p, m: progress.append((p, m)))

    [record] = documents.find_many(DocumentFilter(owner_id="user-1"))
    assert record.status == UploadStatus.failed
    assert progress[-1] == (-1, "fetch_error")


def test_index_failure_marks_document_failed(documents, fake_embedder):
    store = MagicMock()
    store.replace_namespace.side_effect = RuntimeError("qdrant unavailable")
    pipeline = _pipeline(documents, store, fake_embedder, make_pdf(["Some text."]))

    with pytest.raises(VectorIndexError):
        pipeline.run(_event(), FREE)

    [record] = documents.find_many(DocumentFilter(owner_id="user-1"))
    assert record.status == UploadStatus.failed


def test_repeated_event_is_a_noop(documents, vector_store, fake_embedder):
    data = make_pdf(["Only page."])
    pipeline = _pipeline(documents, vector_store, fake_embedder, data)

    first = pipeline.run(_event(), FREE)
    second = pipeline.run(_event(), FREE)

    assert second.id == first.id
    assert pipeline.downloader.fetch.call_count == 1
    assert len(documents.find_many(DocumentFilter(owner_id="user-1"))) == 1


def test_same_key_for_different_owners_creates_two_documents(documents, vector_store, fake_embedder):
    pipeline = _pipeline(documents, vector_store, fake_embedder, make_pdf(["Shared text."]))

    a = pipeline.run(_event(owner="alice"), FREE)
    b = pipeline.run(_event(owner="bob"), FREE)

    assert a.id != b.id


def test_progress_reaches_completion(documents, vector_store, fake_embedder):
    pipeline = _pipeline(documents, vector_store, fake_embedder, make_pdf(["Text."]))
    progress = []

    pipeline.run(_event(), FREE, progress_callback=lambda p, m: progress.append(p))

    assert progress[0] == 5
    assert progress[-1] == 100
    assert progress == sorted(progress)


def test_status_is_write_once_forward():
    record = DocumentRecord(id="d1", storage_key="k", name="n", url="u", owner_id="o")

    done = record.transition(UploadStatus.success)
    assert done.status == UploadStatus.success
    assert record.status == UploadStatus.processing

    with pytest.raises(InvalidStatusTransition):
        done.transition(UploadStatus.failed)
    with pytest.raises(InvalidStatusTransition):
        record.transition(UploadStatus.processing)
    with pytest.raises(InvalidStatusTransition):
        record.transition(UploadStatus.failed).transition(UploadStatus.success)
