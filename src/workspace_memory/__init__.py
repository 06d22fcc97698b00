"""
workspace-memory: project and workspace memory recall for coding assistants.

Recalls relevant notes (decisions, gotchas, preferences, conversation
snippets) for a query and working context, and merges workspace-level notes
into project-level notes.
"""

from .inheritance import MemoryInheritance, merge_items, read_memory_files
from .intelligence import dedupe_by_id, filter_by_scope, recency, score_candidate
from .models import (
    MemoryItem,
    MergedMemorySet,
    QueryContext,
    RecallCandidate,
    RecallOptions,
    ScoredResult,
    WorkspaceInfo,
)
from .recall import SemanticRecall
from .workspace import MarkerWorkspaceDetector

__all__ = [
    "MarkerWorkspaceDetector",
    "MemoryInheritance",
    "MemoryItem",
    "MergedMemorySet",
    "QueryContext",
    "RecallCandidate",
    "RecallOptions",
    "ScoredResult",
    "SemanticRecall",
    "WorkspaceInfo",
    "dedupe_by_id",
    "filter_by_scope",
    "merge_items",
    "read_memory_files",
    "recency",
    "score_candidate",
]
