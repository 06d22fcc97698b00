"""
Adapters around ChromaDB and sentence-transformers for the recall pipeline.

:class:`ChromaVectorStore` satisfies the ``search(embedding, limit)``
interface consumed by :class:`~workspace_memory.recall.SemanticRecall`, and
:class:`SentenceTransformerEmbedder` satisfies ``embed(text)``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Sequence

import chromadb
from chromadb.utils import embedding_functions

from .models import RecallCandidate

#: Metadata keys stored alongside each document.
_METADATA_FIELDS = ("type", "project", "workspace", "branch", "timestamp", "sourceFile", "permanent")


def get_embedding_function(
    model_name: str = "all-MiniLM-L6-v2",
) -> embedding_functions.SentenceTransformerEmbeddingFunction:
    """Return a sentence-transformer embedding function for ChromaDB."""
    return embedding_functions.SentenceTransformerEmbeddingFunction(
        model_name=model_name
    )


class SentenceTransformerEmbedder:
    """
    Embedding client backed by a sentence-transformers model.

    Blank text has no embedding and returns ``None``.
    """

    def __init__(
        self,
        model_name: str = "all-MiniLM-L6-v2",
        _embedding_function: Any | None = None,
    ) -> None:
        self._ef = _embedding_function or get_embedding_function(model_name)

    async def embed(self, text: str) -> list[float] | None:
        if not text or not text.strip():
            return None
        vectors = await asyncio.to_thread(self._ef, [text])
        if vectors is None or len(vectors) == 0:
            return None
        return [float(x) for x in vectors[0]]


class ChromaVectorStore:
    """
    Persistent vector store backed by ChromaDB.

    Uses cosine space so that query distances are in [0, 2].  Similarity is
    1 - distance clamped at zero, so anti-correlated hits land at 0 and
    combined scores stay non-negative.
    """

    def __init__(
        self,
        path: str = "./chroma_db",
        collection_name: str = "memories",
        embedding_model: str = "all-MiniLM-L6-v2",
        _client: chromadb.ClientAPI | None = None,
        _embedding_function: Any | None = None,
    ) -> None:
        self.client = _client or chromadb.PersistentClient(path=path)
        ef = _embedding_function or get_embedding_function(embedding_model)
        self.collection = self.client.get_or_create_collection(
            name=collection_name,
            embedding_function=ef,
            metadata={"hnsw:space": "cosine"},
        )

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def add(
        self,
        id: str,
        text: str,
        embedding: Sequence[float] | None = None,
        **metadata: Any,
    ) -> None:
        """
        Add a memory document.

        *metadata* takes the contract field names (``type``, ``project``,
        ``workspace``, ``branch``, ``timestamp``, ``sourceFile``,
        ``permanent``).  ``None`` values are dropped since ChromaDB cannot
        store them.
        """
        meta = {k: v for k, v in metadata.items() if k in _METADATA_FIELDS and v is not None}
        self.collection.add(
            ids=[id],
            documents=[text],
            embeddings=[list(embedding)] if embedding is not None else None,
            metadatas=[meta] if meta else None,
        )

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    async def search(self, embedding: Sequence[float], limit: int) -> list[RecallCandidate]:
        """Return up to *limit* nearest memories to *embedding*."""
        return await asyncio.to_thread(self._search, embedding, limit)

    def _search(self, embedding: Sequence[float], limit: int) -> list[RecallCandidate]:
        n = min(limit, self.count())
        if n <= 0:
            return []
        results = self.collection.query(
            query_embeddings=[list(embedding)],
            n_results=n,
        )

        ids = results["ids"][0]
        docs = (results.get("documents") or [[]])[0] or [""] * len(ids)
        metas = (results.get("metadatas") or [[]])[0] or [{}] * len(ids)
        distances = (results.get("distances") or [[]])[0] or [1.0] * len(ids)

        candidates: list[RecallCandidate] = []
        for i, mem_id in enumerate(ids):
            meta = dict(metas[i] or {})
            meta.update(id=mem_id, text=docs[i], similarity=max(0.0, 1.0 - distances[i]))
            candidates.append(RecallCandidate.from_dict(meta))
        return candidates

    def count(self) -> int:
        """Return the total number of stored documents."""
        return self.collection.count()
