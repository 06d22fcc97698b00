"""
Command-line interface for workspace-memory.

Sub-commands
------------
recall  – Recall the memories most relevant to a query.
context – Recall the top memories for seeding an assistant prompt.
inherit – Show a project's memory merged with its workspace's memory.
roots   – Print the memory roots a project inherits from.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import re
import sys
from datetime import datetime, timezone
from pathlib import Path

from .inheritance import MemoryInheritance
from .models import CATEGORIES, SCOPES, QueryContext, RecallOptions, ScoredResult
from .recall import SemanticRecall
from .workspace import DEFAULT_MARKER, MarkerWorkspaceDetector

EXCERPT_LENGTH = 200
TITLE_LENGTH = 80

USAGE_HINT = (
    "Usage: workspace-memory recall QUERY [--scope project|workspace|global] "
    "[--type TYPE ...] [-n N]\nPlease provide a query, e.g. "
    "\"What did we decide about the database?\""
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="workspace-memory",
        description="Recall project and workspace memory for coding assistants.",
    )
    parser.add_argument(
        "--db",
        default="./chroma_db",
        metavar="PATH",
        help="Path to the ChromaDB persistent store (default: ./chroma_db).",
    )
    parser.add_argument(
        "--collection",
        default="memories",
        metavar="NAME",
        help="ChromaDB collection name (default: memories).",
    )
    parser.add_argument(
        "--model",
        default="all-MiniLM-L6-v2",
        metavar="NAME",
        help="sentence-transformers model (default: all-MiniLM-L6-v2).",
    )
    parser.add_argument(
        "--marker",
        default=DEFAULT_MARKER,
        metavar="NAME",
        help=f"File that marks a workspace root (default: {DEFAULT_MARKER}).",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        metavar="LEVEL",
        help="Logging level (default: WARNING).",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    def add_context_args(p: argparse.ArgumentParser) -> None:
        p.add_argument(
            "--project-dir",
            default=".",
            metavar="DIR",
            help="Project directory (default: current directory).",
        )
        p.add_argument("--project", default=None, metavar="ID", help="Project id (default: directory name).")
        p.add_argument(
            "--workspace",
            default=None,
            metavar="PATH",
            help="Workspace identifier (default: detected workspace root).",
        )
        p.add_argument("--branch", default=None, help="Current branch name.")

    # recall
    p_recall = sub.add_parser("recall", help="Recall relevant memories.")
    p_recall.add_argument("query", nargs="?", default="", help="Natural-language query.")
    add_context_args(p_recall)
    p_recall.add_argument(
        "--scope",
        choices=SCOPES,
        default="project",
        help="Search scope (default: project).",
    )
    p_recall.add_argument(
        "--type",
        action="append",
        dest="types",
        default=None,
        metavar="TYPE",
        help="Only return memories of this type (repeatable).",
    )
    p_recall.add_argument(
        "-n",
        type=int,
        default=10,
        metavar="N",
        help="Number of results to return (default: 10).",
    )
    p_recall.add_argument(
        "--min-score",
        type=float,
        default=None,
        metavar="SCORE",
        help="Minimum raw vector similarity of returned memories.",
    )
    p_recall.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # context
    p_context = sub.add_parser("context", help="Top memories for prompt injection.")
    add_context_args(p_context)
    p_context.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # inherit
    p_inherit = sub.add_parser("inherit", help="Show merged project + workspace memory.")
    p_inherit.add_argument("--project-dir", default=".", metavar="DIR", help="Project directory.")
    p_inherit.add_argument("--json", action="store_true", dest="as_json", help="Output as JSON.")

    # roots
    p_roots = sub.add_parser("roots", help="Print inherited memory roots.")
    p_roots.add_argument("--project-dir", default=".", metavar="DIR", help="Project directory.")

    return parser


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build_recall(args: argparse.Namespace) -> SemanticRecall:
    # Imported here so inherit/roots never load ChromaDB or a model.
    from .store import ChromaVectorStore, SentenceTransformerEmbedder

    return SemanticRecall(
        vector_store=ChromaVectorStore(
            path=args.db,
            collection_name=args.collection,
            embedding_model=args.model,
        ),
        embedding_client=SentenceTransformerEmbedder(args.model),
    )


def _build_context(args: argparse.Namespace, detector: MarkerWorkspaceDetector) -> QueryContext:
    project_path = Path(args.project_dir).resolve()
    workspace = args.workspace
    if workspace is None:
        info = detector.detect_workspace(project_path)
        workspace = info.workspace_root if info.is_in_workspace else str(project_path)
    return QueryContext(
        project_id=args.project or project_path.name,
        workspace=workspace,
        branch=args.branch,
    )


def _title(text: str) -> str:
    heading = re.search(r"^#+\s*(.+)$", text, re.MULTILINE)
    if heading:
        title = heading.group(1).strip()
    else:
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        title = lines[0] if lines else "(untitled)"
    return title[:TITLE_LENGTH]


def _format_date(timestamp_ms: float) -> str:
    if not timestamp_ms:
        return "unknown date"
    return datetime.fromtimestamp(timestamp_ms / 1000.0, tz=timezone.utc).strftime("%Y-%m-%d")


def _format_results(results: list[ScoredResult]) -> str:
    if not results:
        return "No memories found."
    lines: list[str] = []
    for i, r in enumerate(results, 1):
        marker = " [PERMANENT]" if r.permanent else ""
        lines.append(
            f"[{i}] {_title(r.text)} ({round(r.score * 100)}%, "
            f"{r.type or 'memory'}, {_format_date(r.date)}){marker}"
        )
        excerpt = " ".join(r.text.split())[:EXCERPT_LENGTH]
        lines.append(f"    {excerpt}")
        if r.source.source_file:
            lines.append(f"    source: {r.source.source_file}")
        lines.append("")
    return "\n".join(lines).rstrip()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.log_level)

    detector = MarkerWorkspaceDetector(marker=args.marker)

    if args.command == "recall":
        if not args.query.strip():
            print(USAGE_HINT, file=sys.stderr)
            return 1
        options = RecallOptions(
            scope=args.scope,
            limit=args.n,
            min_score=args.min_score,
            types=args.types,
        )
        recall = _build_recall(args)
        results = asyncio.run(recall.recall(args.query, _build_context(args, detector), options))
        if args.as_json:
            print(json.dumps([r.to_dict() for r in results], indent=2))
        else:
            print(_format_results(results))

    elif args.command == "context":
        recall = _build_recall(args)
        context = _build_context(args, detector)
        results = asyncio.run(recall.recall_for_context(str(Path(args.project_dir).resolve()), context))
        if args.as_json:
            print(json.dumps([r.to_dict() for r in results], indent=2))
        else:
            print(_format_results(results))

    elif args.command == "inherit":
        inheritance = MemoryInheritance(detector)
        merged = asyncio.run(inheritance.load_inherited_memory(args.project_dir))
        if args.as_json:
            print(json.dumps(merged.to_dict(), indent=2))
        else:
            for category in CATEGORIES:
                items = merged[category]
                print(f"{category} ({len(items)})")
                for item in items:
                    print(f"    [{item.source}] {item.topic}")

    elif args.command == "roots":
        inheritance = MemoryInheritance(detector)
        for root in inheritance.get_inherited_roots(args.project_dir):
            print(root)

    return 0


if __name__ == "__main__":
    sys.exit(main())
