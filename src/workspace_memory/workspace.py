"""
Workspace detection: does a project directory live inside a workspace?

A workspace is any ancestor directory holding the marker file
(``.memory-workspace.json`` by default).  The nearest such ancestor wins.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from .models import WorkspaceInfo

logger = logging.getLogger(__name__)

DEFAULT_MARKER = ".memory-workspace.json"


class WorkspaceDetector(Protocol):
    def detect_workspace(self, project_dir: str | os.PathLike[str]) -> WorkspaceInfo: ...


class MarkerWorkspaceDetector:
    """Detect a workspace by walking up the parents of the project directory."""

    def __init__(self, marker: str = DEFAULT_MARKER) -> None:
        self.marker = marker

    def detect_workspace(self, project_dir: str | os.PathLike[str]) -> WorkspaceInfo:
        project_path = Path(project_dir).resolve()

        for parent in project_path.parents:
            if (parent / self.marker).is_file():
                logger.debug("Project %s is inside workspace %s", project_path, parent)
                return WorkspaceInfo(
                    is_in_workspace=True,
                    workspace_root=str(parent),
                    project_path=str(project_path),
                    relative_project_path=os.path.relpath(project_path, parent),
                )

        return WorkspaceInfo(
            is_in_workspace=False,
            workspace_root=None,
            project_path=str(project_path),
            relative_project_path=None,
        )
