from unittest.mock import MagicMock, patch

import pytest

from docchat.core.embed.embedder import Embedder
from docchat.models.passage import Passage


class _Vector(list):
    def tolist(self):
        return list(self)


@pytest.fixture
def model():
    model = MagicMock()
    model.encode.side_effect = lambda texts, **kwargs: (
        [_Vector([float(len(t)), 1.0]) for t in texts] if isinstance(texts, list)
        else _Vector([float(len(texts)), 0.0])
    )
    with patch("docchat.core.embed.embedder.SentenceTransformer", return_value=model):
        Embedder._model = None
        yield model
        Embedder._model = None


def test_model_is_loaded_once(model):
    first = Embedder()
    second = Embedder()

    assert first.model is second.model is model


def test_embed_passages_fills_vectors(model):
    passages = [Passage(id="p1", document_id="d1", page_number=1, text="abc"),
                Passage(id="p2", document_id="d1", page_number=2, text="abcdef")]

    result = Embedder().embed_passages(passages)

    assert result is passages
    assert [p.embedding for p in passages] == [[3.0, 1.0], [6.0, 1.0]]


def test_embed_query_uses_prefix(model):
    embedder = Embedder()

    vector = embedder.embed_query("What is the summary?")

    encoded = model.encode.call_args.args[0]
    assert encoded.startswith(embedder.config.query_prefix)
    assert encoded.endswith("What is the summary?")
    assert vector == [float(len(encoded)), 0.0]


def test_embed_texts_empty(model):
    assert Embedder().embed_texts([]) == []
    assert not model.encode.called
