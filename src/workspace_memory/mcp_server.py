"""
MCP (Model Context Protocol) server for workspace-memory.

Exposes semantic recall and memory inheritance as Claude tools so that an
assistant can pull relevant project notes into its context.

Run as a stdio server:
    python -m workspace_memory.mcp_server

Or via the installed entry-point:
    workspace-memory-mcp

Configuration (environment variables):
    WORKSPACE_MEMORY_DB_PATH     - path to the ChromaDB store (default: ~/.cache/workspace-memory)
    WORKSPACE_MEMORY_COLLECTION  - ChromaDB collection name (default: memories)
    WORKSPACE_MEMORY_MODEL       - sentence-transformers model (default: all-MiniLM-L6-v2)
    WORKSPACE_MEMORY_MARKER      - file marking a workspace root (default: .memory-workspace.json)
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from .inheritance import MemoryInheritance
from .models import QueryContext, RecallOptions, ScoredResult
from .recall import SemanticRecall
from .workspace import DEFAULT_MARKER, MarkerWorkspaceDetector

# ---------------------------------------------------------------------------
# Resolve configuration from environment (with sensible defaults)
# ---------------------------------------------------------------------------

_DEFAULT_DB_PATH = str(Path.home() / ".cache" / "workspace-memory")

_DB_PATH = os.environ.get("WORKSPACE_MEMORY_DB_PATH", _DEFAULT_DB_PATH)
_COLLECTION = os.environ.get("WORKSPACE_MEMORY_COLLECTION", "memories")
_MODEL = os.environ.get("WORKSPACE_MEMORY_MODEL", "all-MiniLM-L6-v2")
_MARKER = os.environ.get("WORKSPACE_MEMORY_MARKER", DEFAULT_MARKER)

# Lazy-initialised singletons so the embedding model is only loaded once.
_recall: SemanticRecall | None = None
_inheritance: MemoryInheritance | None = None


def _get_recall() -> SemanticRecall:
    global _recall
    if _recall is None:
        from .store import ChromaVectorStore, SentenceTransformerEmbedder

        _recall = SemanticRecall(
            vector_store=ChromaVectorStore(
                path=_DB_PATH,
                collection_name=_COLLECTION,
                embedding_model=_MODEL,
            ),
            embedding_client=SentenceTransformerEmbedder(_MODEL),
        )
    return _recall


def _get_inheritance() -> MemoryInheritance:
    global _inheritance
    if _inheritance is None:
        _inheritance = MemoryInheritance(MarkerWorkspaceDetector(marker=_MARKER))
    return _inheritance


def _dump(results: list[ScoredResult]) -> str:
    if not results:
        return "No memories found."
    return json.dumps([r.to_dict() for r in results], indent=2)


# ---------------------------------------------------------------------------
# FastMCP server
# ---------------------------------------------------------------------------

mcp = FastMCP(
    "workspace-memory",
    instructions=(
        "Project and workspace memory for coding assistants. "
        "Use `recall_memories` to find decisions, gotchas, preferences and "
        "past conversation snippets relevant to a question. "
        "Use `recall_context` at the start of a session to load the most "
        "relevant memories for the current project. "
        "Use `inherited_memory` to read every note a project sees, merged "
        "with its workspace's notes. "
        "Use `inherited_roots` to see which memory directories apply."
    ),
)


@mcp.tool()
async def recall_memories(
    query: str,
    project_id: str,
    workspace: str = "",
    branch: str = "",
    scope: str = "project",
    limit: int = 10,
    min_score: float | None = None,
    types: list[str] | None = None,
) -> str:
    """
    Recall the memories most relevant to a natural-language query.

    Results are ranked by a blend of vector similarity (50%), recency with a
    7-day half-life (25%) and same-project relevance (25%); permanent
    memories get a 1.2x boost.

    Args:
        query:      Question or topic to search for.
        project_id: Identifier of the current project.
        workspace:  Identifier of the current workspace.
        branch:     Current branch name.
        scope:      "project" (widens to workspace when too few hits),
                    "workspace" or "global".
        limit:      Maximum number of memories to return (default 10).
        min_score:  Minimum raw vector similarity of returned memories.
        types:      Only return memories of these types.

    Returns:
        JSON array of results with fields id, text, score, type, source,
        date and permanent.
    """
    context = QueryContext(project_id=project_id, workspace=workspace or None, branch=branch or None)
    options = RecallOptions(scope=scope, limit=limit, min_score=min_score, types=types)  # type: ignore[arg-type]
    return _dump(await _get_recall().recall(query, context, options))


@mcp.tool()
async def recall_context(
    project_root: str,
    project_id: str = "",
    workspace: str = "",
) -> str:
    """
    Return the top 5 memories for the current project, for prompt seeding.

    Args:
        project_root: Path of the project directory.
        project_id:   Identifier of the current project.
        workspace:    Identifier of the current workspace.

    Returns:
        JSON array of results (same shape as `recall_memories`).
    """
    context = QueryContext(project_id=project_id or None, workspace=workspace or None)
    return _dump(await _get_recall().recall_for_context(project_root, context))


@mcp.tool()
async def inherited_memory(project_dir: str) -> str:
    """
    Load a project's memory notes merged with its workspace's notes.

    Decisions and preferences defined by the project override workspace
    notes with the same topic; gotchas and conversations are combined.

    Args:
        project_dir: Path of the project directory.

    Returns:
        JSON object keyed by category, each a list of items with topic,
        text, source, relevance and category.
    """
    merged = await _get_inheritance().load_inherited_memory(project_dir)
    return json.dumps(merged.to_dict(), indent=2)


@mcp.tool()
def inherited_roots(project_dir: str) -> str:
    """
    List the memory directories a project reads from, project first.

    Args:
        project_dir: Path of the project directory.

    Returns:
        JSON array of absolute paths.
    """
    return json.dumps(_get_inheritance().get_inherited_roots(project_dir))


# ---------------------------------------------------------------------------
# Entry-point
# ---------------------------------------------------------------------------


def main() -> None:
    """Run the MCP server over stdio."""
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
