"""
Memory inheritance: merge workspace-level notes into a project's own notes.

Layout on disk (read-only)::

    <root>/memory/<category>/<topic>.md

where ``<root>`` is either the project directory or the workspace root the
project sits in.  Each category has a merge policy:

* ``decisions`` and ``preferences`` are **override** – a project note hides
  the workspace note with the same topic.
* ``gotchas`` and ``conversations`` are **union** – notes from both levels
  are kept.

Usage example::

    from workspace_memory import MarkerWorkspaceDetector, MemoryInheritance

    inheritance = MemoryInheritance(MarkerWorkspaceDetector())
    merged = await inheritance.load_inherited_memory("./my-project")
    for item in merged.decisions:
        print(item.topic, item.source)
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from .models import (
    CATEGORIES,
    MERGE_POLICIES,
    MemoryItem,
    MergedMemorySet,
    relevance_for,
)
from .workspace import WorkspaceDetector

logger = logging.getLogger(__name__)

MEMORY_DIRNAME = "memory"
NOTE_EXTENSION = ".md"


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------


def read_memory_files(
    directory: str | os.PathLike[str],
    source: str,
    category: str,
) -> list[MemoryItem]:
    """
    Load every note directly under *directory* as a :class:`MemoryItem`.

    Only regular files ending in ``.md`` are read, in filename order.  A
    missing directory, or any error while listing or reading, yields an
    empty list for this source.
    """
    path = Path(directory)
    relevance = relevance_for(source)
    try:
        if not path.is_dir():
            return []
        files = sorted(
            (p for p in path.iterdir() if p.name.endswith(NOTE_EXTENSION) and p.is_file()),
            key=lambda p: p.name,
        )
        return [
            MemoryItem(
                topic=p.name[: -len(NOTE_EXTENSION)],
                text=p.read_text(encoding="utf-8"),
                source=source,  # type: ignore[arg-type]
                relevance=relevance,
                category=category,  # type: ignore[arg-type]
            )
            for p in files
        ]
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping %s memory in %s: %s", source, path, exc)
        return []


# ---------------------------------------------------------------------------
# Merging
# ---------------------------------------------------------------------------


def merge_items(
    project_items: list[MemoryItem],
    workspace_items: list[MemoryItem],
    category: str,
) -> list[MemoryItem]:
    """
    Combine the two levels of one category according to its merge policy.

    Override categories keep every project item, then the workspace items
    whose topic the project does not define.  Union categories concatenate.
    """
    if MERGE_POLICIES.get(category) == "override":
        project_topics = {item.topic for item in project_items}
        return list(project_items) + [
            item for item in workspace_items if item.topic not in project_topics
        ]
    return list(project_items) + list(workspace_items)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


class MemoryInheritance:
    """
    Loads a project's memory merged with its workspace's memory.

    Parameters
    ----------
    workspace_detector:
        Anything with a ``detect_workspace(project_dir)`` method returning a
        :class:`~workspace_memory.models.WorkspaceInfo`.
    """

    def __init__(self, workspace_detector: WorkspaceDetector) -> None:
        self.workspace_detector = workspace_detector

    async def load_inherited_memory(self, project_dir: str | os.PathLike[str]) -> MergedMemorySet:
        """Read all four categories from both levels and merge them."""
        project_path = Path(project_dir).resolve()
        workspace_root = self._workspace_root(project_path)

        merged = MergedMemorySet()
        for category in CATEGORIES:
            project_items = await asyncio.to_thread(
                read_memory_files,
                project_path / MEMORY_DIRNAME / category,
                "project",
                category,
            )
            workspace_items: list[MemoryItem] = []
            if workspace_root is not None:
                workspace_items = await asyncio.to_thread(
                    read_memory_files,
                    workspace_root / MEMORY_DIRNAME / category,
                    "workspace",
                    category,
                )
            setattr(merged, category, merge_items(project_items, workspace_items, category))

        logger.debug(
            "Loaded inherited memory for %s: %s",
            project_path,
            {cat: len(merged[cat]) for cat in CATEGORIES},
        )
        return merged

    def get_inherited_roots(self, project_dir: str | os.PathLike[str]) -> list[str]:
        """Return the project memory root, then the workspace one if any."""
        project_path = Path(project_dir).resolve()
        roots = [str(project_path / MEMORY_DIRNAME)]
        workspace_root = self._workspace_root(project_path)
        if workspace_root is not None:
            roots.append(str(workspace_root / MEMORY_DIRNAME))
        return roots

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _workspace_root(self, project_path: Path) -> Path | None:
        info = self.workspace_detector.detect_workspace(str(project_path))
        if not info.is_in_workspace or not info.workspace_root:
            return None
        return Path(info.workspace_root)
