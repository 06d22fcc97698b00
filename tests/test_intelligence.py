"""Tests for the intelligence layer (scoring, scope filtering, deduplication)."""

from __future__ import annotations

import math

import pytest

from workspace_memory.intelligence import (
    AUTO_WIDEN_THRESHOLD,
    PERMANENT_BOOST,
    dedupe_by_id,
    filter_by_scope,
    recency,
    score_candidate,
)
from workspace_memory.models import QueryContext, ScoredCandidate
from conftest import DAY_MS, NOW_MS, make_candidate

CONTEXT = QueryContext(project_id="my-project", workspace="/ws")


def _scored(score: float = 0.5, **overrides) -> ScoredCandidate:
    return ScoredCandidate(candidate=make_candidate(**overrides), score=score)


# ---------------------------------------------------------------------------
# recency
# ---------------------------------------------------------------------------


class TestRecency:
    def test_now_is_one(self):
        assert recency(NOW_MS, now=NOW_MS) == pytest.approx(1.0)

    def test_half_life_is_seven_days(self):
        assert recency(NOW_MS - 7 * DAY_MS, now=NOW_MS) == pytest.approx(0.5)

    def test_two_half_lives(self):
        assert recency(NOW_MS - 14 * DAY_MS, now=NOW_MS) == pytest.approx(0.25)

    def test_monotonically_non_increasing_with_age(self):
        values = [recency(NOW_MS - d * DAY_MS, now=NOW_MS) for d in range(0, 60, 3)]
        assert values == sorted(values, reverse=True)

    def test_future_timestamp_clamps_to_one(self):
        assert recency(NOW_MS + 5 * DAY_MS, now=NOW_MS) == 1.0

    def test_defaults_to_system_clock(self, monkeypatch):
        monkeypatch.setattr("workspace_memory.intelligence.time.time", lambda: NOW_MS / 1000.0)
        assert recency(NOW_MS - 7 * DAY_MS) == pytest.approx(0.5)


# ---------------------------------------------------------------------------
# score_candidate
# ---------------------------------------------------------------------------


class TestScoreCandidate:
    def test_matches_weighted_formula(self):
        candidate = make_candidate(similarity=0.6, timestamp=NOW_MS - 3 * DAY_MS)
        expected = 0.5 * 0.6 + 0.25 * math.exp(-3 * math.log(2) / 7) + 0.25 * 1.0
        assert score_candidate(candidate, CONTEXT, now=NOW_MS) == pytest.approx(expected, abs=1e-6)

    def test_other_project_gets_no_project_relevance(self):
        candidate = make_candidate(project="other", similarity=0.6, timestamp=NOW_MS)
        expected = 0.5 * 0.6 + 0.25 * 1.0
        assert score_candidate(candidate, CONTEXT, now=NOW_MS) == pytest.approx(expected, abs=1e-6)

    def test_permanent_boosts_whole_sum(self):
        base = make_candidate(permanent=False)
        perm = make_candidate(permanent=True)
        plain = score_candidate(base, CONTEXT, now=NOW_MS)
        boosted = score_candidate(perm, CONTEXT, now=NOW_MS)
        assert boosted == pytest.approx(plain * PERMANENT_BOOST)

    def test_max_score_is_one_point_two(self):
        candidate = make_candidate(similarity=1.0, timestamp=NOW_MS, permanent=True)
        assert score_candidate(candidate, CONTEXT, now=NOW_MS) == pytest.approx(1.2)

    def test_missing_similarity_counts_as_zero(self):
        candidate = make_candidate(similarity=0.0, project="other", timestamp=NOW_MS)
        assert score_candidate(candidate, CONTEXT, now=NOW_MS) == pytest.approx(0.25)


# ---------------------------------------------------------------------------
# filter_by_scope
# ---------------------------------------------------------------------------


class TestFilterByScope:
    def test_global_passes_everything(self):
        scored = [_scored(project="a", workspace="/x"), _scored(project="b", workspace="/y")]
        assert filter_by_scope(scored, "global", CONTEXT) == scored

    def test_workspace_keeps_matching_workspace(self):
        scored = [
            _scored(id="in", project="other", workspace="/ws"),
            _scored(id="out", project="my-project", workspace="/elsewhere"),
        ]
        result = filter_by_scope(scored, "workspace", CONTEXT)
        assert [s.id for s in result] == ["in"]

    def test_project_keeps_matching_project_when_enough(self):
        scored = [_scored(id=f"p{i}") for i in range(3)] + [_scored(id="w", project="sibling")]
        result = filter_by_scope(scored, "project", CONTEXT)
        assert [s.id for s in result] == ["p0", "p1", "p2"]

    def test_project_widens_to_workspace_when_too_few(self):
        scored = [
            _scored(id="p1"),
            _scored(id="w1", project="sibling"),
            _scored(id="w2", project="sibling"),
            _scored(id="far", project="far", workspace="/other"),
        ]
        result = filter_by_scope(scored, "project", CONTEXT)
        assert [s.id for s in result] == ["p1", "w1", "w2"]
        assert len(result) == AUTO_WIDEN_THRESHOLD

    def test_project_does_not_widen_when_workspace_also_too_few(self):
        scored = [
            _scored(id="p1"),
            _scored(id="w1", project="sibling"),
            _scored(id="far", project="far", workspace="/other"),
        ]
        result = filter_by_scope(scored, "project", CONTEXT)
        assert [s.id for s in result] == ["p1"]

    def test_project_never_widens_to_global(self):
        scored = [_scored(id=f"far{i}", project="far", workspace="/other") for i in range(5)]
        assert filter_by_scope(scored, "project", CONTEXT) == []


# ---------------------------------------------------------------------------
# dedupe_by_id
# ---------------------------------------------------------------------------


class TestDedupeById:
    def test_keeps_highest_score(self):
        scored = [
            _scored(0.4, id="dup", text="low"),
            _scored(0.9, id="dup", text="high"),
            _scored(0.6, id="dup", text="mid"),
        ]
        result = dedupe_by_id(scored)
        assert len(result) == 1
        assert result[0].score == 0.9
        assert result[0].candidate.text == "high"

    def test_first_seen_wins_ties(self):
        scored = [_scored(0.5, id="dup", text="first"), _scored(0.5, id="dup", text="second")]
        assert dedupe_by_id(scored)[0].candidate.text == "first"

    def test_distinct_ids_are_kept_in_order(self):
        scored = [_scored(id="a"), _scored(id="b"), _scored(0.9, id="a"), _scored(id="c")]
        assert [s.id for s in dedupe_by_id(scored)] == ["a", "b", "c"]

    def test_empty(self):
        assert dedupe_by_id([]) == []
