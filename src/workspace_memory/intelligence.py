"""
Intelligent logic layer: relevance scoring, scope filtering, and deduplication.

These pure functions sit between the raw vector store and the public
recall results:
  - Combined scoring of similarity, recency, and project relevance
  - Scope filtering with a single auto-widen step from project to workspace
  - Deduplication by memory id, keeping the best-scoring entry
"""

from __future__ import annotations

import math
import time

from .models import QueryContext, RecallCandidate, ScoredCandidate

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SIMILARITY_WEIGHT: float = 0.5
RECENCY_WEIGHT: float = 0.25
PROJECT_RELEVANCE_WEIGHT: float = 0.25

#: Applied to the whole weighted sum, so a brand-new permanent memory from
#: the current project with perfect similarity scores 1.2.
PERMANENT_BOOST: float = 1.2

RECENCY_HALF_LIFE_DAYS: float = 7.0

#: Project scope widens to workspace scope below this many results.
AUTO_WIDEN_THRESHOLD: int = 3

MS_PER_DAY: int = 24 * 60 * 60 * 1000


def now_ms() -> float:
    """Current time in epoch milliseconds."""
    return time.time() * 1000.0


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def recency(timestamp: float, now: float | None = None) -> float:
    """
    Exponential decay of *timestamp* (epoch ms) with a 7-day half-life.

    Returns 1.0 for "now" and halves every seven days.  Timestamps in the
    future are clamped to an age of zero.
    """
    if now is None:
        now = now_ms()
    age_days = max(0.0, now - timestamp) / MS_PER_DAY
    return math.exp(-age_days * math.log(2) / RECENCY_HALF_LIFE_DAYS)


def score_candidate(
    candidate: RecallCandidate,
    context: QueryContext,
    now: float | None = None,
) -> float:
    """
    Combined relevance score of *candidate* for *context*::

        similarity * 0.5 + recency * 0.25 + project_relevance * 0.25

    multiplied by 1.2 for permanent memories.
    """
    similarity = candidate.similarity or 0.0
    project_relevance = 1.0 if candidate.project == context.project_id else 0.0

    score = (
        similarity * SIMILARITY_WEIGHT
        + recency(candidate.timestamp, now) * RECENCY_WEIGHT
        + project_relevance * PROJECT_RELEVANCE_WEIGHT
    )
    if candidate.permanent:
        score *= PERMANENT_BOOST
    return score


# ---------------------------------------------------------------------------
# Scope filtering
# ---------------------------------------------------------------------------


def _in_workspace(scored: list[ScoredCandidate], context: QueryContext) -> list[ScoredCandidate]:
    return [s for s in scored if s.candidate.workspace == context.workspace]


def filter_by_scope(
    scored: list[ScoredCandidate],
    scope: str,
    context: QueryContext,
) -> list[ScoredCandidate]:
    """
    Narrow *scored* to ``project``, ``workspace`` or ``global`` scope.

    Project scope falls back to the workspace-filtered set when the project
    has fewer than :data:`AUTO_WIDEN_THRESHOLD` hits and the workspace has at
    least that many.  The widening happens once and never reaches global.
    """
    if scope == "global":
        return list(scored)

    if scope == "workspace":
        return _in_workspace(scored, context)

    project_filtered = [s for s in scored if s.candidate.project == context.project_id]
    if len(project_filtered) < AUTO_WIDEN_THRESHOLD:
        workspace_filtered = _in_workspace(scored, context)
        if len(workspace_filtered) >= AUTO_WIDEN_THRESHOLD:
            return workspace_filtered
    return project_filtered


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------


def dedupe_by_id(scored: list[ScoredCandidate]) -> list[ScoredCandidate]:
    """
    Keep one entry per id: the one with the strictly greatest score.

    On exact ties the first-seen entry wins.  Ids keep their first-seen order.
    """
    best: dict[str, ScoredCandidate] = {}
    for entry in scored:
        existing = best.get(entry.id)
        if existing is None or entry.score > existing.score:
            best[entry.id] = entry
    return list(best.values())
