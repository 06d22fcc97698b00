"""
SemanticRecall: ranked retrieval of memories for a query and working context.

Usage example::

    from workspace_memory import QueryContext, RecallOptions, SemanticRecall

    recall = SemanticRecall(vector_store=store, embedding_client=embedder)
    context = QueryContext(project_id="api", workspace="/src/acme")

    results = await recall.recall(
        "Which database did we pick?",
        context,
        RecallOptions(scope="project", limit=5),
    )
    for r in results:
        print(r.score, r.text)
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Protocol, Sequence

from .intelligence import dedupe_by_id, filter_by_scope, score_candidate
from .models import QueryContext, RecallCandidate, RecallOptions, ScoredCandidate, ScoredResult

logger = logging.getLogger(__name__)

#: Results returned by :meth:`SemanticRecall.recall_for_context`.
CONTEXT_INJECTION_LIMIT: int = 5

#: Candidates fetched per requested result, to absorb type / scope / dedup losses.
OVERFETCH_FACTOR: int = 3


class EmbeddingClient(Protocol):
    def embed(self, text: str) -> Any:
        """Return an embedding vector for *text*, or something falsy if unavailable."""
        ...


class VectorStore(Protocol):
    def search(self, embedding: Sequence[float], limit: int) -> Any:
        """Return up to *limit* :class:`RecallCandidate` for *embedding*, in any order."""
        ...


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def _is_missing(embedding: Any) -> bool:
    if embedding is None:
        return True
    try:
        return len(embedding) == 0
    except TypeError:
        return not embedding


def _as_candidate(raw: RecallCandidate | dict[str, Any]) -> RecallCandidate:
    if isinstance(raw, RecallCandidate):
        return raw
    return RecallCandidate.from_dict(raw)


class SemanticRecall:
    """
    Search, score, filter and rank memories from a vector store.

    Each call is independent: nothing is cached between calls, and all
    state lives in the injected store and embedding client.

    Parameters
    ----------
    vector_store:
        Object with ``search(embedding, limit)``; may be sync or async.
    embedding_client:
        Object with ``embed(text)``; may be sync or async.  A falsy return
        value means "no embedding available" and yields no results.
    clock:
        Optional callable returning the current time in epoch milliseconds.
        Used for recency scoring; defaults to the system clock.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        embedding_client: EmbeddingClient,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.vector_store = vector_store
        self.embedding_client = embedding_client
        self._clock = clock

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def recall(
        self,
        query: str | None,
        context: QueryContext,
        options: RecallOptions | None = None,
    ) -> list[ScoredResult]:
        """
        Return up to ``options.limit`` results for *query*, best first.

        The pipeline is: embed, over-fetch ``limit * 3`` candidates, score,
        filter by type, filter by scope (with auto-widening), dedupe by id,
        drop candidates whose raw similarity is below ``options.min_score``,
        sort by combined score and truncate.
        """
        if not query:
            return []

        options = options or RecallOptions()

        embedding = await _resolve(self.embedding_client.embed(query))
        if _is_missing(embedding):
            logger.info("No embedding available for query; returning no memories")
            return []

        raw_results = await _resolve(
            self.vector_store.search(embedding, limit=options.limit * OVERFETCH_FACTOR)
        )
        now = self._clock() if self._clock is not None else None

        scored = [
            ScoredCandidate(candidate=c, score=score_candidate(c, context, now))
            for c in map(_as_candidate, raw_results or [])
        ]
        fetched = len(scored)

        if options.types:
            wanted = set(options.types)
            scored = [s for s in scored if s.candidate.type in wanted]

        scored = filter_by_scope(scored, options.scope, context)
        scored = dedupe_by_id(scored)

        # Thresholds the raw vector similarity, not the combined score.
        if options.min_score is not None:
            scored = [s for s in scored if s.candidate.similarity >= options.min_score]

        scored.sort(key=lambda s: s.score, reverse=True)
        scored = scored[: options.limit]

        logger.debug(
            "Recall %r (scope=%s): %d candidates fetched, %d returned",
            query,
            options.scope,
            fetched,
            len(scored),
        )
        return [s.to_result() for s in scored]

    async def recall_for_context(
        self,
        project_root: str,
        context: QueryContext,
    ) -> list[ScoredResult]:
        """
        Top memories for seeding an assistant prompt without a user question.

        The query is ``"<project_id> project context"``, or *project_root*
        itself when the context carries no project id.
        """
        query = f"{context.project_id} project context" if context.project_id else project_root
        return await self.recall(query, context, RecallOptions(limit=CONTEXT_INJECTION_LIMIT))
