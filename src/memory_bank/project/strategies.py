"""Project detection strategies.

Every strategy has the same shape, ``(DetectionContext) -> Candidate | None``,
and reads nothing but the context it is given plus the filesystem. The
resolver folds them in priority order; a strategy only returns a candidate
whose raw name already passes ``is_valid_name``.
"""

from __future__ import annotations

import json
import os
import re
import sys
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, NamedTuple

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from memory_bank.project.names import has_project_markers, is_system_path, is_valid_name

if TYPE_CHECKING:
    from memory_bank.config import DetectionConfig

MARKER_FILENAME = ".mcp-project"

COMMON_PROJECT_CONTAINERS = (
    "Projects",
    "projects",
    "Dev",
    "dev",
    "Development",
    "GitHub",
    "Documents/GitHub",
    "Documents/Projects",
    "workspace",
)

_VARIABLE = re.compile(r"\$\{([^}]+)\}")


class Candidate(NamedTuple):
    name: str
    source: str


@dataclass(frozen=True)
class DetectionContext:
    """Snapshot of everything detection is allowed to look at."""

    cwd: Path
    home: Path
    env: Mapping[str, str] = field(default_factory=dict)
    argv: tuple[str, ...] = ()
    platform: str = sys.platform
    editor_probes: bool = True
    process_inspection: bool = True
    marker_depth: int = 5

    @classmethod
    def from_environment(cls, detection: DetectionConfig | None = None) -> DetectionContext:
        """Capture the live process state."""
        kwargs = {}
        if detection is not None:
            kwargs = {
                "editor_probes": detection.editor_probes,
                "process_inspection": detection.process_inspection,
                "marker_depth": detection.marker_depth,
            }
        return cls(
            cwd=Path.cwd(),
            home=Path.home(),
            env=dict(os.environ),
            argv=tuple(sys.argv),
            platform=sys.platform,
            **kwargs,
        )


Strategy = Callable[[DetectionContext], "Candidate | None"]


# ── Shared helpers ────────────────────────────────────────


def detect_project_path(cwd: Path) -> Path:
    """Nearest ancestor holding a .git entry, else cwd itself."""
    try:
        for p in [cwd, *cwd.parents]:
            if (p / ".git").exists():
                return p
    except OSError:
        pass
    return cwd


def folder_candidate(path: Path, source: str, home: Path | None = None) -> Candidate | None:
    """Accept an existing, marked, non-system directory as a candidate."""
    try:
        if not path.is_dir():
            return None
    except OSError:
        return None
    if home is not None and path == home:
        return None
    if is_system_path(path) or not has_project_markers(path):
        return None
    if not is_valid_name(path.name):
        return None
    return Candidate(path.name, source)


def workspace_folder(context: DetectionContext) -> Path | None:
    """Best guess for the editor's ${workspaceFolder}."""
    for var in ("VSCODE_WORKSPACE_FOLDER", "VSCODE_CWD", "WORKSPACE_FOLDER"):
        value = context.env.get(var)
        if value:
            path = Path(value)
            if path.is_dir() and has_project_markers(path) and not is_system_path(path):
                return path

    if has_project_markers(context.cwd) and not is_system_path(context.cwd):
        return context.cwd

    root = detect_project_path(context.cwd)
    if (root / ".git").exists():
        return root
    return None


def resolve_variables(value: str, context: DetectionContext) -> str | None:
    """Expand ${workspaceFolder}, ${workspaceFolderBasename} and ${env:NAME}.

    Returns None when a placeholder cannot be resolved, so a literal
    "${workspaceFolderBasename}" never becomes a project name.
    """

    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key in ("workspaceFolder", "workspaceFolderBasename"):
            folder = workspace_folder(context)
            if folder is None:
                return match.group(0)
            return str(folder) if key == "workspaceFolder" else folder.name
        if key.startswith("env:"):
            return context.env.get(key[4:], match.group(0))
        return match.group(0)

    resolved = _VARIABLE.sub(replace, value).strip()
    if not resolved or _VARIABLE.search(resolved):
        return None
    return resolved


def _argv_project(argv: tuple[str, ...]) -> str | None:
    for i, arg in enumerate(argv):
        if arg in ("--project", "-p") and i + 1 < len(argv):
            return argv[i + 1]
        for prefix in ("--project=", "-p="):
            if arg.startswith(prefix):
                return arg[len(prefix):]
    return None


# ── 1. Explicit user override ─────────────────────────────


def user_override(context: DetectionContext) -> Candidate | None:
    """MCP_PROJECT_NAME, MCP_PROJECT_PATH, then --project on the command line."""
    raw = context.env.get("MCP_PROJECT_NAME")
    if raw:
        name = resolve_variables(raw, context)
        if is_valid_name(name):
            return Candidate(name, "MCP_PROJECT_NAME environment variable")

    raw = context.env.get("MCP_PROJECT_PATH")
    if raw:
        resolved = resolve_variables(raw, context)
        if resolved:
            path = Path(resolved).expanduser()
            if not path.is_absolute():
                path = context.cwd / path
            if path.exists() and not is_system_path(path) and is_valid_name(path.name):
                return Candidate(path.name, f"MCP_PROJECT_PATH environment variable: {path}")

    raw = _argv_project(context.argv)
    if raw:
        name = resolve_variables(raw, context)
        if is_valid_name(name):
            return Candidate(name, f"command line argument: {name}")
    return None


# ── 2. Marker file ────────────────────────────────────────


def marker_file(context: DetectionContext) -> Candidate | None:
    """First non-empty line of a .mcp-project file in cwd or its parents."""
    directories = [context.cwd, *context.cwd.parents][: context.marker_depth]
    for directory in directories:
        path = directory / MARKER_FILENAME
        try:
            if not path.is_file():
                continue
            text = path.read_text(encoding="utf-8")
        except OSError:
            continue
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines:
            continue
        name = resolve_variables(lines[0], context)
        if is_valid_name(name):
            return Candidate(name, f"marker file: {path}")
    return None


# ── 4. Package manifest ───────────────────────────────────


def _package_json_name(cwd: Path) -> str | None:
    path = cwd / "package.json"
    if not path.is_file():
        return None
    name = json.loads(path.read_text(encoding="utf-8")).get("name")
    if isinstance(name, str):
        return re.sub(r"^@[^/]+/", "", name)
    return None


def _pyproject_name(cwd: Path) -> str | None:
    path = cwd / "pyproject.toml"
    if not path.is_file():
        return None
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    name = data.get("project", {}).get("name") or (
        data.get("tool", {}).get("poetry", {}).get("name")
    )
    return name if isinstance(name, str) else None


def _cargo_name(cwd: Path) -> str | None:
    path = cwd / "Cargo.toml"
    if not path.is_file():
        return None
    name = tomllib.loads(path.read_text(encoding="utf-8")).get("package", {}).get("name")
    return name if isinstance(name, str) else None


def _composer_name(cwd: Path) -> str | None:
    path = cwd / "composer.json"
    if not path.is_file():
        return None
    name = json.loads(path.read_text(encoding="utf-8")).get("name")
    if isinstance(name, str):
        return name.rsplit("/", 1)[-1]
    return None


MANIFEST_READERS: tuple[tuple[str, Callable[[Path], "str | None"]], ...] = (
    ("package.json", _package_json_name),
    ("pyproject.toml", _pyproject_name),
    ("Cargo.toml", _cargo_name),
    ("composer.json", _composer_name),
)


def package_manifest(context: DetectionContext) -> Candidate | None:
    """Project name declared by a manifest in cwd."""
    for filename, reader in MANIFEST_READERS:
        try:
            name = reader(context.cwd)
        except (OSError, ValueError, AttributeError):
            # Unreadable or malformed manifest; try the next one
            continue
        if is_valid_name(name):
            return Candidate(name, str(context.cwd / filename))
    return None


# ── 5. Current directory ──────────────────────────────────


def directory_name(context: DetectionContext) -> Candidate | None:
    """cwd basename, when cwd looks like a real project root."""
    cwd = context.cwd
    if cwd == context.home or is_system_path(cwd):
        return None
    if not has_project_markers(cwd) or not is_valid_name(cwd.name):
        return None
    return Candidate(cwd.name, str(cwd))


# ── 6. Secondary editor heuristics ────────────────────────


def editor_context(context: DetectionContext) -> Candidate | None:
    """Editor env vars, folder-like argv entries, then cwd's parent."""
    name = context.env.get("VSCODE_WORKSPACE_NAME")
    if is_valid_name(name):
        return Candidate(name, "VSCODE_WORKSPACE_NAME env var")

    for var in ("VSCODE_WORKSPACE_FOLDER", "VSCODE_CWD"):
        value = context.env.get(var)
        if value:
            found = folder_candidate(Path(value), f"{var} env var", context.home)
            if found:
                return found

    for i, arg in enumerate(context.argv):
        if not arg or not ("/" in arg or "\\" in arg) or is_system_path(arg):
            continue
        path = Path(arg).expanduser()
        if not path.is_absolute():
            path = context.cwd / path
        found = folder_candidate(path, f"argv[{i}]: {path}", context.home)
        if found:
            return found

    parent = context.cwd.parent
    if parent != context.cwd:
        return folder_candidate(parent, f"parent directory: {parent}", context.home)
    return None


# ── 7. Smart pattern search ───────────────────────────────


def _most_recent_subdirs(container: Path) -> list[Path]:
    entries = []
    for child in container.iterdir():
        try:
            if child.is_dir() and has_project_markers(child):
                entries.append((child.stat().st_mtime, child))
        except OSError:
            continue
    entries.sort(key=lambda e: (-e[0], e[1].name))
    return [path for _, path in entries]


def common_patterns(context: DetectionContext) -> Candidate | None:
    """Guess a project when started from home or an editor-internal directory."""
    cwd = context.cwd
    if cwd != context.home and not is_system_path(cwd):
        return None

    for p in [cwd, *cwd.parents][:3]:
        if p == context.home or p in context.home.parents:
            continue
        found = folder_candidate(p, f"project markers found: {p}", context.home)
        if found:
            return found

    for relative in COMMON_PROJECT_CONTAINERS:
        container = context.home / relative
        try:
            if not container.is_dir():
                continue
            subdirs = _most_recent_subdirs(container)
        except OSError:
            continue
        for project in subdirs:
            if is_valid_name(project.name) and not is_system_path(project):
                return Candidate(project.name, f"recent project in {container}: {project}")
    return None
