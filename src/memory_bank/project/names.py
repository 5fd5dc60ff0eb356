"""Project-name validation, sanitization and directory heuristics."""

from __future__ import annotations

import re
from pathlib import Path

MAX_NAME_LENGTH = 50

# Exact names that are never a project: build output, OS/user folders,
# editor install and runtime folders.
INVALID_NAMES = frozenset(
    {
        "src", "dist", "build", "out", "bin", "lib",
        "node_modules", "users", "documents", "desktop",
        "downloads", "appdata", "program files", "windows",
        "system32", "temp", "tmp", ".", "..",
        "user", "admin", "home", "root", "dev",
        "microsoft-vs-code", "vs-code", "vscode", "code",
        "visual-studio-code", "microsoft", "electron",
        "extensions", "extension", "crash", "crashes",
        "logs", "log", "cache", "caches",
    }
)

# Substrings that only appear in the host editor's own install/runtime paths.
FORBIDDEN_SUBSTRINGS = (
    "microsoft",
    "vs-code",
    "vscode",
    "visual-studio",
    "electron",
    "appdata",
)

SYSTEM_PATH_FRAGMENTS = (
    "appdata",
    "program files",
    "system32",
    "microsoft vs code",
    "visual studio code",
    "vs-code",
    ".vscode-server",
    ".vscode/extensions",
    ".vscode\\extensions",
    ".cursor/extensions",
    "node_modules",
    "npm-cache",
    "/.npm/",
    "/usr/lib",
    "/usr/share",
    "/opt/visual",
)

PROJECT_MARKERS = (
    ".git",
    ".mcp-project",
    "package.json",
    "tsconfig.json",
    "pyproject.toml",
    "setup.py",
    "Cargo.toml",
    "go.mod",
    "composer.json",
    "requirements.txt",
    ".vscode",
    ".idea",
    "src",
    "README.md",
    "yarn.lock",
    "pnpm-lock.yaml",
    "package-lock.json",
    "poetry.lock",
)

_DRIVE_LETTER = re.compile(r"^[a-z]:?[\\/]?$")


def is_valid_name(name: str | None) -> bool:
    """Return True if ``name`` is plausible as a project name."""
    if not name or len(name.strip()) < 2:
        return False
    lower = name.strip().lower()
    if lower in INVALID_NAMES:
        return False
    if _DRIVE_LETTER.match(lower):
        return False
    return not any(s in lower for s in FORBIDDEN_SUBSTRINGS)


def sanitize_name(name: str) -> str:
    """Normalise a name into a filesystem-safe namespace."""
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\-_]", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    slug = slug[:MAX_NAME_LENGTH]
    return slug or "project"


def is_system_path(path: Path | str) -> bool:
    """True for OS, package-manager and editor-internal directories."""
    lower = str(path).lower()
    return any(fragment in lower for fragment in SYSTEM_PATH_FRAGMENTS)


def has_project_markers(path: Path | str) -> bool:
    """True if the directory holds at least one recognised project marker."""
    p = Path(path)
    try:
        return any((p / marker).exists() for marker in PROJECT_MARKERS)
    except OSError:
        return False
