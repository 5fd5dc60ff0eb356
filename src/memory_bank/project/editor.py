"""Host-editor "active workspace" probes.

Best effort only: these read editor state files and inspect running
processes, none of which is guaranteed to exist or be stable across editor
versions. Gated by ``DetectionContext.editor_probes`` and
``DetectionContext.process_inspection``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from urllib.parse import unquote, urlparse

import psutil

from memory_bank.project.strategies import Candidate, DetectionContext, folder_candidate

logger = logging.getLogger(__name__)

EDITOR_DIRS = ("Code", "Code - Insiders", "Cursor", "VSCodium", "Windsurf")

EDITOR_PROCESS_NAMES = {
    "code",
    "code.exe",
    "code-insiders",
    "code - insiders.exe",
    "cursor",
    "cursor.exe",
    "codium",
    "codium.exe",
    "windsurf",
    "windsurf.exe",
}


def editor_user_dirs(context: DetectionContext) -> list[Path]:
    """Per-editor ``User`` directories for the context's platform."""
    if context.platform.startswith("win"):
        base = Path(context.env.get("APPDATA") or context.home / "AppData" / "Roaming")
    elif context.platform == "darwin":
        base = context.home / "Library" / "Application Support"
    else:
        base = Path(context.env.get("XDG_CONFIG_HOME") or context.home / ".config")
    return [base / name / "User" for name in EDITOR_DIRS]


def uri_to_path(uri: str) -> Path:
    """Convert a ``file://`` URI (or a bare path) into a local path."""
    if not uri.startswith("file:"):
        return Path(uri)
    path = unquote(urlparse(uri).path)
    # file:///c%3A/Users/x -> c:/Users/x
    if len(path) > 2 and path[0] == "/" and path[2] == ":":
        path = path[1:]
    return Path(path)


def _entry_folder(entry) -> str | None:
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        folder = entry.get("folderUri") or entry.get("folder")
        if isinstance(folder, dict):
            return folder.get("path")
        if isinstance(folder, str):
            return folder
    return None


# ── Recent-folder records ─────────────────────────────────


def _storage_folders(storage: dict) -> list[str]:
    """Folders from storage.json: last active window, open windows, recents."""
    folders: list[str] = []
    windows = storage.get("windowsState") or {}
    last_active = _entry_folder(windows.get("lastActiveWindow"))
    if last_active:
        folders.append(last_active)
    for window in windows.get("openedWindows") or []:
        folder = _entry_folder(window)
        if folder:
            folders.append(folder)
    recent = storage.get("history.recentlyOpenedPathsList") or {}
    for entry in recent.get("entries") or []:
        folder = _entry_folder(entry)
        if folder:
            folders.append(folder)
    return folders


def recent_folder_records(context: DetectionContext) -> Candidate | None:
    for user_dir in editor_user_dirs(context):
        storage_path = user_dir / "globalStorage" / "storage.json"
        try:
            if not storage_path.is_file():
                continue
            storage = json.loads(storage_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.debug("Unreadable editor storage %s: %s", storage_path, e)
            continue
        for folder in _storage_folders(storage):
            path = uri_to_path(folder)
            found = folder_candidate(path, f"editor recent folder: {path}", context.home)
            if found:
                return found
    return None


# ── Workspace storage ─────────────────────────────────────


def workspace_storage(context: DetectionContext) -> Candidate | None:
    """Folder of the most recently modified workspaceStorage entry."""
    entries: list[tuple[float, Path]] = []
    for user_dir in editor_user_dirs(context):
        storage_dir = user_dir / "workspaceStorage"
        try:
            if not storage_dir.is_dir():
                continue
            for child in storage_dir.iterdir():
                if (child / "workspace.json").is_file():
                    entries.append((child.stat().st_mtime, child))
        except OSError:
            continue

    entries.sort(key=lambda e: (-e[0], e[1].name))
    for _, entry_dir in entries:
        try:
            data = json.loads((entry_dir / "workspace.json").read_text(encoding="utf-8"))
        except (OSError, ValueError):
            continue
        folder = data.get("folder") if isinstance(data, dict) else None
        if not isinstance(folder, str):
            continue
        path = uri_to_path(folder)
        found = folder_candidate(path, f"editor workspace storage: {path}", context.home)
        if found:
            return found
    return None


# ── Process inspection ────────────────────────────────────


def _cmdline_folders(cmdline: list[str]) -> list[str]:
    folders = []
    for i, arg in enumerate(cmdline):
        if arg == "--folder-uri" and i + 1 < len(cmdline):
            folders.append(cmdline[i + 1])
        elif arg.startswith("--folder-uri="):
            folders.append(arg.split("=", 1)[1])
    # A trailing positional argument is usually the folder that was opened
    if len(cmdline) > 1 and not cmdline[-1].startswith("-"):
        folders.append(cmdline[-1])
    return folders


def editor_processes(context: DetectionContext) -> Candidate | None:
    """Folder passed on a running editor's command line."""
    if not context.process_inspection:
        return None
    for proc in psutil.process_iter(["name", "cmdline"]):
        try:
            name = (proc.info.get("name") or "").lower()
            if name not in EDITOR_PROCESS_NAMES:
                continue
            cmdline = proc.info.get("cmdline") or []
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        for folder in _cmdline_folders(cmdline):
            path = uri_to_path(folder)
            found = folder_candidate(path, f"editor process {proc.pid}: {path}", context.home)
            if found:
                return found
    return None


EDITOR_PROBES = (recent_folder_records, workspace_storage, editor_processes)


def active_editor_workspace(context: DetectionContext) -> Candidate | None:
    """Ask each editor probe in turn; any failure just skips that probe."""
    if not context.editor_probes:
        return None
    for probe in EDITOR_PROBES:
        try:
            found = probe(context)
        except Exception as e:
            logger.debug("Editor probe %s failed: %s", probe.__name__, e)
            continue
        if found:
            return found
    return None
