"""Shared pytest fixtures: in-memory stores and a deterministic embedder."""

import hashlib
import uuid

import fitz
import pytest
from qdrant_client import QdrantClient

from docchat.models.passage import Passage
from docchat.storage.qdrant_store import QdrantStore
from docchat.storage.record_store import LocalDocumentRepository, LocalMessageRepository

VECTOR_DIM = 16


class FakeEmbedder:
    """Bag-of-words hashing embedder; similar texts get similar vectors."""

    def embed_texts(self, texts):
        return [self._vector(t) for t in texts]

    def embed_passages(self, passages: list[Passage]) -> list[Passage]:
        for passage, vector in zip(passages, self.embed_texts([p.text for p in passages])):
            passage.embedding = vector
        return passages

    def embed_query(self, query: str):
        return self._vector(query)

    @staticmethod
    def _vector(text: str) -> list[float]:
        vector = [0.0] * VECTOR_DIM
        vector[0] = 0.1
        for word in text.lower().split():
            bucket = int(hashlib.md5(word.encode()).hexdigest(), 16) % (VECTOR_DIM - 1)
            vector[bucket + 1] += 1.0
        return vector


def make_pdf(page_texts: list[str]) -> bytes:
    """Builds a PDF with one page per entry; empty strings give blank pages."""
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((50, 72), text, fontsize=12)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def vector_store() -> QdrantStore:
    return QdrantStore(
        client=QdrantClient(location=":memory:"),
        collection_name=f"test_{uuid.uuid4().hex[:8]}",
        vector_dim=VECTOR_DIM,
    )


@pytest.fixture
def documents() -> LocalDocumentRepository:
    return LocalDocumentRepository()


@pytest.fixture
def messages() -> LocalMessageRepository:
    return LocalMessageRepository()
