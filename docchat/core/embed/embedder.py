import logging
from typing import List
from sentence_transformers import SentenceTransformer
from docchat.models.passage import Passage
from docchat.config.settings import settings

logger = logging.getLogger(__name__)

class Embedder:
    """
    Handles embedding generation for passages and queries.
    - Uses singleton-style model loading to save memory.
    - Supports batched embedding and L2 normalisation.
    """

    _model = None

    def __init__(self):
        self.config = settings.embedding
        self._load_model()

    def _load_model(self):
        """Loads the sentence-transformer model onto CPU."""
        if Embedder._model is None:
            logger.info(f"Loading embedding model: {self.config.model_name}...")
            Embedder._model = SentenceTransformer(self.config.model_name, device="cpu")
        self.model = Embedder._model

    def embed_texts(self, texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        embeddings = self.model.encode(
            texts,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            normalize_embeddings=self.config.normalise
        )
        return [e.tolist() for e in embeddings]

    def embed_passages(self, passages: List[Passage]) -> List[Passage]:
        """
        Generates embeddings for passages in batches.
        Updates the 'embedding' field of each passage in-place.
        """
        vectors = self.embed_texts([p.text for p in passages])
        for passage, vector in zip(passages, vectors):
            passage.embedding = vector
        return passages

    def embed_query(self, query: str) -> List[float]:
        """
        Generates an embedding for a single query string.
        Applies the query prefix required by BGE models.
        """
        prefixed_query = f"{self.config.query_prefix}{query}"

        embedding = self.model.encode(
            prefixed_query,
            normalize_embeddings=self.config.normalise
        )

        return embedding.tolist()
