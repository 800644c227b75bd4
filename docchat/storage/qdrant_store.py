import logging
import uuid
from typing import List, Optional
from qdrant_client import QdrantClient
from qdrant_client.http import models as rest
from docchat.models.passage import Passage, RetrievedPassage
from docchat.storage.base import VectorStore
from docchat.config.settings import settings, QdrantConfig

logger = logging.getLogger(__name__)

PASSAGE_ID_NAMESPACE = uuid.UUID("6f1c9a52-3d0e-4b8e-9a51-0c2f7d4e8b13")


def passage_id(document_id: str, page_number: int) -> str:
    """Deterministic point id, so re-indexing a page overwrites instead of duplicating."""
    return str(uuid.uuid5(PASSAGE_ID_NAMESPACE, f"{document_id}:{page_number}"))


def build_client(config: QdrantConfig) -> QdrantClient:
    if config.mode == "memory":
        return QdrantClient(location=":memory:")
    if config.mode == "remote":
        return QdrantClient(url=config.url)
    return QdrantClient(path=config.local_path)


class QdrantStore(VectorStore):
    """
    Implements VectorStore on a single Qdrant collection.
    Namespaces are a keyword payload field; every read and delete is filtered on it.
    """

    def __init__(self,
                 client: Optional[QdrantClient] = None,
                 collection_name: Optional[str] = None,
                 vector_dim: Optional[int] = None):
        self.config = settings.qdrant
        self.client = client or build_client(self.config)
        self.collection_name = collection_name or self.config.collection_name
        self.vector_dim = vector_dim or settings.embedding.vector_dim
        self._ensure_collection()

    def _ensure_collection(self):
        if not self.collection_exists():
            logger.info(f"Creating Qdrant collection: {self.collection_name}")
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=rest.VectorParams(
                    size=self.vector_dim,
                    distance=rest.Distance.COSINE
                ),
                hnsw_config=rest.HnswConfigDiff(
                    m=self.config.hnsw_m,
                    ef_construct=self.config.hnsw_ef_construct
                )
            )
            self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name="namespace",
                field_schema=rest.PayloadSchemaType.KEYWORD
            )

    def collection_exists(self) -> bool:
        collections = self.client.get_collections().collections
        return any(c.name == self.collection_name for c in collections)

    @staticmethod
    def _namespace_filter(namespace: str) -> rest.Filter:
        return rest.Filter(
            must=[
                rest.FieldCondition(
                    key="namespace",
                    match=rest.MatchValue(value=namespace)
                )
            ]
        )

    def upsert(self, namespace: str, passages: List[Passage]) -> None:
        points = []
        for passage in passages:
            if passage.embedding is None:
                continue
            points.append(rest.PointStruct(
                id=passage.id,
                vector=passage.embedding,
                payload={
                    "namespace": namespace,
                    "document_id": passage.document_id,
                    "page_number": passage.page_number,
                    "text": passage.text
                }
            ))

        if points:
            self.client.upsert(
                collection_name=self.collection_name,
                points=points,
                wait=True
            )

    def replace_namespace(self, namespace: str, passages: List[Passage]) -> None:
        self.delete_namespace(namespace)
        self.upsert(namespace, passages)

    def query(self, namespace: str, vector: List[float], top_k: int) -> List[RetrievedPassage]:
        results = self.client.query_points(
            collection_name=self.collection_name,
            query=vector,
            limit=top_k,
            query_filter=self._namespace_filter(namespace),
            with_payload=True,
            search_params=rest.SearchParams(
                hnsw_ef=self.config.hnsw_ef
            )
        ).points

        return [
            RetrievedPassage(
                text=r.payload.get("text", ""),
                score=r.score,
                page_number=r.payload.get("page_number")
            )
            for r in results
            if r.payload
        ]

    def delete_namespace(self, namespace: str) -> None:
        self.client.delete(
            collection_name=self.collection_name,
            points_selector=rest.FilterSelector(
                filter=self._namespace_filter(namespace)
            ),
            wait=True
        )

    def count(self, namespace: str) -> int:
        return self.client.count(
            collection_name=self.collection_name,
            count_filter=self._namespace_filter(namespace),
            exact=True
        ).count
