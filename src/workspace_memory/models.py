"""
Records shared by the inheritance and recall pipelines.

Attributes are snake_case; ``to_dict()`` produces the field names that
downstream UI / CLI consumers rely on (``sourceFile`` and friends), so
those must not change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

# ---------------------------------------------------------------------------
# Memory inheritance
# ---------------------------------------------------------------------------

Source = Literal["project", "workspace"]
Category = Literal["decisions", "gotchas", "preferences", "conversations"]
Scope = Literal["project", "workspace", "global"]

CATEGORIES: tuple[str, ...] = ("decisions", "gotchas", "preferences", "conversations")

#: ``override`` – project wins on topic collision.
#: ``union``    – items from both sources are kept.
MERGE_POLICIES: dict[str, str] = {
    "decisions": "override",
    "gotchas": "union",
    "preferences": "override",
    "conversations": "union",
}

#: Relevance is fixed per source, never derived from content.
PROJECT_RELEVANCE: float = 1.0
WORKSPACE_RELEVANCE: float = 0.5

SCOPES: tuple[str, ...] = ("project", "workspace", "global")

DEFAULT_LIMIT: int = 10


def relevance_for(source: str) -> float:
    """Return the fixed relevance for a memory *source*."""
    return PROJECT_RELEVANCE if source == "project" else WORKSPACE_RELEVANCE


@dataclass
class MemoryItem:
    """One note file.  ``topic`` is the filename without its extension."""

    topic: str
    text: str
    source: Source
    relevance: float
    category: Category

    def to_dict(self) -> dict[str, Any]:
        return {
            "topic": self.topic,
            "text": self.text,
            "source": self.source,
            "relevance": self.relevance,
            "category": self.category,
        }


@dataclass
class MergedMemorySet:
    decisions: list[MemoryItem] = field(default_factory=list)
    gotchas: list[MemoryItem] = field(default_factory=list)
    preferences: list[MemoryItem] = field(default_factory=list)
    conversations: list[MemoryItem] = field(default_factory=list)

    def __getitem__(self, category: str) -> list[MemoryItem]:
        if category not in CATEGORIES:
            raise KeyError(category)
        return getattr(self, category)

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {cat: [item.to_dict() for item in self[cat]] for cat in CATEGORIES}


@dataclass
class WorkspaceInfo:
    """Answer of a workspace detector for one project directory."""

    is_in_workspace: bool
    workspace_root: str | None
    project_path: str
    relative_project_path: str | None = None


# ---------------------------------------------------------------------------
# Semantic recall
# ---------------------------------------------------------------------------


@dataclass
class QueryContext:
    """Where the caller is working right now.  Supplied on every call."""

    project_id: str | None
    workspace: str | None
    branch: str | None = None
    touched_files: list[str] = field(default_factory=list)


@dataclass
class RecallCandidate:
    """
    A raw hit from the vector store.

    ``timestamp`` is in epoch milliseconds; ``similarity`` is the store's
    vector similarity for the query embedding.
    """

    id: str
    text: str
    type: str | None = None
    project: str | None = None
    workspace: str | None = None
    branch: str | None = None
    timestamp: float = 0.0
    source_file: str | None = None
    permanent: bool = False
    similarity: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecallCandidate":
        """Build a candidate from a store record (camelCase or snake_case keys)."""
        source_file = data.get("sourceFile", data.get("source_file"))
        return cls(
            id=data["id"],
            text=data.get("text", ""),
            type=data.get("type"),
            project=data.get("project"),
            workspace=data.get("workspace"),
            branch=data.get("branch"),
            timestamp=float(data.get("timestamp") or 0.0),
            source_file=source_file,
            permanent=bool(data.get("permanent", False)),
            similarity=float(data.get("similarity") or 0.0),
        )


@dataclass
class ResultSource:
    project: str | None
    workspace: str | None
    branch: str | None
    source_file: str | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.project,
            "workspace": self.workspace,
            "branch": self.branch,
            "sourceFile": self.source_file,
        }


@dataclass
class ScoredResult:
    """Public recall result.  ``score`` is the combined relevance score."""

    id: str
    text: str
    score: float
    type: str | None
    source: ResultSource
    date: float
    permanent: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "score": self.score,
            "type": self.type,
            "source": self.source.to_dict(),
            "date": self.date,
            "permanent": self.permanent,
        }


@dataclass
class ScoredCandidate:
    """A candidate paired with its combined score, internal to a recall call."""

    candidate: RecallCandidate
    score: float

    @property
    def id(self) -> str:
        return self.candidate.id

    def to_result(self) -> ScoredResult:
        raw = self.candidate
        return ScoredResult(
            id=raw.id,
            text=raw.text,
            score=self.score,
            type=raw.type,
            source=ResultSource(
                project=raw.project,
                workspace=raw.workspace,
                branch=raw.branch,
                source_file=raw.source_file,
            ),
            date=raw.timestamp,
            permanent=bool(raw.permanent),
        )


@dataclass
class RecallOptions:
    """
    Options for :meth:`SemanticRecall.recall`.

    ``min_score`` is compared against the raw vector similarity of each
    candidate, not against the combined score exposed on results.
    """

    scope: Scope = "project"
    limit: int = DEFAULT_LIMIT
    min_score: float | None = None
    types: list[str] | None = None

    def __post_init__(self) -> None:
        if self.scope not in SCOPES:
            raise ValueError(
                f"Invalid scope {self.scope!r}. Must be one of: {', '.join(SCOPES)}"
            )
