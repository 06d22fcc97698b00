"""
Shared pytest fixtures for workspace-memory tests.

Uses ChromaDB in ephemeral (in-memory) mode and a deterministic fake
embedding function so that adapter tests run fast without downloading
any ML models.  Recall tests use in-memory fakes for the embedding client
and vector store.
"""

from __future__ import annotations

import hashlib
import uuid
from pathlib import Path
from typing import Any

import chromadb
import pytest

from workspace_memory.models import RecallCandidate, WorkspaceInfo
from workspace_memory.store import ChromaVectorStore

#: Fixed "now" for recency scoring, in epoch milliseconds.
NOW_MS = 1_750_000_000_000.0
DAY_MS = 86_400_000.0


class FakeEmbeddingFunction:
    """
    Deterministic embedding function that maps text to a unit vector
    derived from its MD5 hash.  Fast and reproducible – no model download.
    Implements both the legacy ``__call__`` interface and the newer
    ``embed_documents`` / ``embed_query`` interface used by ChromaDB ≥ 0.5.
    """

    def name(self) -> str:  # required by ChromaDB >= 0.5
        return "fake-md5-embedding"

    def _embed(self, texts: list[str]) -> list[list[float]]:
        embeddings = []
        for text in texts:
            digest = hashlib.md5(text.encode()).digest()
            # 16-byte digest → 16-dim float vector in [-1, 1]
            vec = [(b - 128) / 128.0 for b in digest]
            norm = sum(x * x for x in vec) ** 0.5 or 1.0
            embeddings.append([x / norm for x in vec])
        return embeddings

    def __call__(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        return self._embed(input)

    def embed_documents(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        return self._embed(input)

    def embed_query(self, input: list[str]) -> list[list[float]]:  # noqa: A002
        return self._embed(input)


class FakeEmbeddingClient:
    """Returns a fixed vector (or nothing) and records every call."""

    def __init__(self, vector: Any = (0.1, 0.2, 0.3)) -> None:
        self.vector = list(vector) if vector else vector
        self.calls: list[str] = []

    async def embed(self, text: str) -> Any:
        self.calls.append(text)
        return self.vector


class FakeVectorStore:
    """Returns preset candidates regardless of the embedding."""

    def __init__(self, candidates: list[Any] | None = None) -> None:
        self.candidates = list(candidates or [])
        self.calls: list[tuple[Any, int]] = []

    def search(self, embedding: Any, limit: int) -> list[Any]:
        self.calls.append((embedding, limit))
        return list(self.candidates)


class FakeWorkspaceDetector:
    """Reports *workspace_root* as the workspace, or standalone when ``None``."""

    def __init__(self, workspace_root: Path | None = None) -> None:
        self.workspace_root = workspace_root
        self.calls: list[str] = []

    def detect_workspace(self, project_dir: str) -> WorkspaceInfo:
        self.calls.append(str(project_dir))
        if self.workspace_root is None:
            return WorkspaceInfo(False, None, str(project_dir), None)
        return WorkspaceInfo(
            True,
            str(self.workspace_root),
            str(project_dir),
            str(Path(project_dir).relative_to(self.workspace_root)),
        )


def make_candidate(**overrides: Any) -> RecallCandidate:
    """A candidate from project ``my-project`` in workspace ``/ws``, one day old."""
    fields: dict[str, Any] = {
        "id": "mem-1",
        "text": "Some memory text",
        "type": "decision",
        "project": "my-project",
        "workspace": "/ws",
        "branch": "main",
        "timestamp": NOW_MS - DAY_MS,
        "source_file": "memory/decisions/something.md",
        "permanent": False,
        "similarity": 0.8,
    }
    fields.update(overrides)
    return RecallCandidate(**fields)


def write_memory(root: Path, contents: dict[str, dict[str, str]] | None = None) -> Path:
    """
    Create ``<root>/memory/<category>/`` for every category and write the
    given ``{category: {filename: text}}`` notes.
    """
    memory_dir = root / "memory"
    for category in ("decisions", "gotchas", "preferences", "conversations"):
        cat_dir = memory_dir / category
        cat_dir.mkdir(parents=True, exist_ok=True)
        for filename, text in (contents or {}).get(category, {}).items():
            (cat_dir / filename).write_text(text, encoding="utf-8")
    return memory_dir


# A single shared EphemeralClient instance for the test session.
# Each fixture call creates a uniquely named collection so tests are isolated.
_EPHEMERAL_CLIENT = chromadb.EphemeralClient()


@pytest.fixture()
def ephemeral_store() -> ChromaVectorStore:
    """In-memory ChromaVectorStore with the fake embedding function."""
    collection_name = f"test_{uuid.uuid4().hex}"
    return ChromaVectorStore(
        _client=_EPHEMERAL_CLIENT,
        collection_name=collection_name,
        _embedding_function=FakeEmbeddingFunction(),
    )


@pytest.fixture()
def workspace_dirs(tmp_path: Path) -> tuple[Path, Path]:
    """A ``workspace/my-project`` directory pair."""
    workspace = tmp_path / "workspace"
    project = workspace / "my-project"
    project.mkdir(parents=True)
    return workspace, project
