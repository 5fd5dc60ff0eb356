"""Project identity resolution: fold an ordered list of detection strategies."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from memory_bank.project.editor import active_editor_workspace
from memory_bank.project.names import is_valid_name, sanitize_name
from memory_bank.project.strategies import (
    Candidate,
    DetectionContext,
    Strategy,
    common_patterns,
    detect_project_path,
    directory_name,
    editor_context,
    marker_file,
    package_manifest,
    user_override,
)

logger = logging.getLogger(__name__)

FALLBACK_NAME = "unknown-project"

# Highest priority first: explicit and cheap before implicit and expensive.
DEFAULT_STRATEGIES: tuple[tuple[str, Strategy], ...] = (
    ("User Configuration", user_override),
    ("Project Marker File", marker_file),
    ("Active Editor Workspace", active_editor_workspace),
    ("Package Manifest", package_manifest),
    ("Directory Name", directory_name),
    ("Editor Context", editor_context),
    ("Smart Pattern Detection", common_patterns),
)

CONFIG_HINT = """\
Could not determine the project for %s; memories go to '%s'.
Set it explicitly with one of:
  - MCP_PROJECT_NAME in the server's env, e.g. "MCP_PROJECT_NAME": "${workspaceFolderBasename}"
  - a .mcp-project file in the project root containing the project name"""


@dataclass(frozen=True)
class ProjectIdentity:
    """The namespace memories are stored under, and how it was chosen."""

    name: str
    method: str
    source: str
    path: str
    detected_at: float = field(default_factory=time.time, compare=False)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "detection_method": self.method,
            "detection_source": self.source,
            "path": self.path,
        }


class ProjectResolver:
    """Pick the project namespace for the current process."""

    def __init__(
        self,
        context: DetectionContext | None = None,
        strategies: Iterable[tuple[str, Strategy]] | None = None,
    ) -> None:
        self.context = context or DetectionContext.from_environment()
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES

    def detect(self) -> ProjectIdentity:
        """Run the cascade. Never raises."""
        try:
            identity = self._run_cascade()
        except Exception as e:
            logger.error("Project detection failed: %s", e)
            return ProjectIdentity(
                name=FALLBACK_NAME,
                method="Error Fallback",
                source="error-recovery",
                path=str(self.context.cwd),
            )

        logger.info("Detected project %r via %s (%s)", identity.name, identity.method, identity.source)
        if identity.method == "Fallback":
            logger.warning(CONFIG_HINT, self.context.cwd, identity.name)
        return identity

    def _run_cascade(self) -> ProjectIdentity:
        path = str(detect_project_path(self.context.cwd))
        for method, strategy in self.strategies:
            candidate = self._attempt(method, strategy)
            if not candidate or not is_valid_name(candidate.name):
                continue
            name = sanitize_name(candidate.name)
            # Sanitizing can turn a valid raw name into a denylisted one ("Src!" -> "src")
            if is_valid_name(name):
                return ProjectIdentity(
                    name=name,
                    method=method,
                    source=candidate.source,
                    path=path,
                )
        return self._fallback(path)

    def _attempt(self, method: str, strategy: Strategy) -> Candidate | None:
        try:
            return strategy(self.context)
        except Exception as e:
            logger.debug("Detection strategy %s failed: %s", method, e)
            return None

    def _fallback(self, path: str) -> ProjectIdentity:
        name = sanitize_name(self.context.cwd.name)
        if is_valid_name(self.context.cwd.name) and is_valid_name(name):
            return ProjectIdentity(name, "Fallback", "directory-basename-fallback", path)
        return ProjectIdentity(FALLBACK_NAME, "Fallback", "directory-basename-fallback", path)
