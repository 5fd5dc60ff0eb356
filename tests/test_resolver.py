"""Tests for project identity resolution and the editor probes."""

from __future__ import annotations

import json
import os
from pathlib import Path
from types import SimpleNamespace

import pytest

from memory_bank.project import editor, resolver
from memory_bank.project.editor import active_editor_workspace, uri_to_path
from memory_bank.project.resolver import FALLBACK_NAME, ProjectResolver
from memory_bank.project.strategies import Candidate, DetectionContext


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


def make_project(parent: Path, name: str) -> Path:
    project = parent / name
    (project / ".git").mkdir(parents=True)
    return project


def context(cwd: Path, home: Path, **kwargs) -> DetectionContext:
    kwargs.setdefault("editor_probes", False)
    kwargs.setdefault("process_inspection", False)
    return DetectionContext(cwd=cwd, home=home, **kwargs)


def write_storage(home: Path, data: dict) -> None:
    storage = home / ".config" / "Code" / "User" / "globalStorage" / "storage.json"
    storage.parent.mkdir(parents=True)
    storage.write_text(json.dumps(data))


class TestCascade:
    def test_user_configuration_wins(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "repo")
        (project / ".mcp-project").write_text("marked")
        (project / "package.json").write_text(json.dumps({"name": "pkg"}))

        identity = ProjectResolver(
            context(project, home, env={"MCP_PROJECT_NAME": "My Override"})
        ).detect()
        assert identity.name == "my-override"
        assert identity.method == "User Configuration"
        assert identity.path == str(project)

    def test_marker_beats_manifest(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "repo")
        (project / ".mcp-project").write_text("marked")
        (project / "package.json").write_text(json.dumps({"name": "pkg"}))

        identity = ProjectResolver(context(project, home)).detect()
        assert identity.name == "marked"
        assert identity.method == "Project Marker File"

    def test_manifest_beats_directory_name(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "repo")
        (project / "package.json").write_text(json.dumps({"name": "@scope/Web UI"}))

        identity = ProjectResolver(context(project, home)).detect()
        assert identity.name == "web-ui"
        assert identity.method == "Package Manifest"

    def test_directory_name(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "Shop_Front")
        identity = ProjectResolver(context(project, home)).detect()
        assert identity.name == "shop_front"
        assert identity.method == "Directory Name"

    def test_editor_workspace_beats_manifest(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "repo")
        (project / "package.json").write_text(json.dumps({"name": "pkg"}))
        opened = make_project(tmp_path, "opened-in-editor")
        write_storage(home, {"windowsState": {"lastActiveWindow": {"folder": opened.as_uri()}}})

        identity = ProjectResolver(
            context(project, home, platform="linux", editor_probes=True)
        ).detect()
        assert identity.name == "opened-in-editor"
        assert identity.method == "Active Editor Workspace"

    def test_detection_is_deterministic(self, tmp_path: Path, home: Path):
        project = make_project(tmp_path, "repo")
        first = ProjectResolver(context(project, home)).detect()
        second = ProjectResolver(context(project, home)).detect()
        assert first == second


class TestFallback:
    def test_basename_fallback(self, tmp_path: Path, home: Path):
        bare = tmp_path / "scratch-pad"
        bare.mkdir()
        identity = ProjectResolver(context(bare, home)).detect()
        assert identity.name == "scratch-pad"
        assert identity.method == "Fallback"
        assert identity.source == "directory-basename-fallback"

    def test_invalid_basename_gives_unknown_project(self, tmp_path: Path, home: Path):
        bare = tmp_path / "dist"
        bare.mkdir()
        identity = ProjectResolver(context(bare, home)).detect()
        assert identity.name == FALLBACK_NAME
        assert identity.method == "Fallback"

    def test_error_fallback(self, tmp_path: Path, home: Path, monkeypatch):
        def boom(cwd):
            raise RuntimeError("disk on fire")

        monkeypatch.setattr(resolver, "detect_project_path", boom)
        identity = ProjectResolver(context(tmp_path, home)).detect()
        assert identity.name == FALLBACK_NAME
        assert identity.method == "Error Fallback"
        assert identity.source == "error-recovery"

    def test_failing_strategy_is_skipped(self, tmp_path: Path, home: Path):
        def broken(ctx):
            raise OSError("unreadable")

        strategies = [
            ("Broken", broken),
            ("Denylisted", lambda ctx: Candidate("node_modules", "test")),
            ("Working", lambda ctx: Candidate("Good Name", "test")),
        ]
        identity = ProjectResolver(context(tmp_path, home), strategies).detect()
        assert identity.name == "good-name"
        assert identity.method == "Working"

    def test_sanitized_denylisted_name_is_skipped(self, tmp_path: Path, home: Path):
        strategies = [
            ("Sanitizes To Src", lambda ctx: Candidate("Src!", "test")),
            ("Working", lambda ctx: Candidate("catalog", "test")),
        ]
        identity = ProjectResolver(context(tmp_path, home), strategies).detect()
        assert identity.name == "catalog"
        assert identity.method == "Working"

    def test_fallback_rejects_sanitized_denylisted_basename(self, tmp_path: Path, home: Path):
        bare = tmp_path / "Dist!"
        bare.mkdir()
        identity = ProjectResolver(context(bare, home), []).detect()
        assert identity.name == FALLBACK_NAME

    def test_to_dict(self, tmp_path: Path, home: Path):
        identity = ProjectResolver(
            context(tmp_path, home), [("Fixed", lambda ctx: Candidate("alpha", "here"))]
        ).detect()
        assert identity.to_dict() == {
            "name": "alpha",
            "detection_method": "Fixed",
            "detection_source": "here",
            "path": str(tmp_path),
        }


class TestEditorProbes:
    def test_disabled_probes_return_nothing(self, tmp_path: Path, home: Path):
        opened = make_project(tmp_path, "opened")
        write_storage(home, {"windowsState": {"lastActiveWindow": {"folder": opened.as_uri()}}})
        assert active_editor_workspace(context(tmp_path, home, platform="linux")) is None

    def test_recently_opened_entries(self, tmp_path: Path, home: Path):
        recent = make_project(tmp_path, "recent-one")
        write_storage(
            home,
            {
                "windowsState": {"lastActiveWindow": {"folder": (tmp_path / "gone").as_uri()}},
                "history.recentlyOpenedPathsList": {"entries": [{"folderUri": recent.as_uri()}]},
            },
        )
        found = active_editor_workspace(
            context(tmp_path, home, platform="linux", editor_probes=True)
        )
        assert found.name == "recent-one"

    def test_workspace_storage_most_recent(self, tmp_path: Path, home: Path):
        storage_dir = home / ".config" / "Code" / "User" / "workspaceStorage"
        for entry, name, mtime in (("aaa", "older", 1_000_000), ("bbb", "newer", 2_000_000)):
            project = make_project(tmp_path, name)
            entry_dir = storage_dir / entry
            entry_dir.mkdir(parents=True)
            (entry_dir / "workspace.json").write_text(json.dumps({"folder": project.as_uri()}))
            os.utime(entry_dir, (mtime, mtime))

        found = active_editor_workspace(
            context(tmp_path, home, platform="linux", editor_probes=True)
        )
        assert found.name == "newer"

    def test_editor_process_folder(self, tmp_path: Path, home: Path, monkeypatch):
        project = make_project(tmp_path, "from-process")
        procs = [
            SimpleNamespace(pid=1, info={"name": "bash", "cmdline": ["bash", str(project)]}),
            SimpleNamespace(pid=2, info={"name": "code", "cmdline": ["code", str(project)]}),
        ]
        monkeypatch.setattr(editor.psutil, "process_iter", lambda attrs=None: iter(procs))

        found = active_editor_workspace(
            context(
                tmp_path, home, platform="linux", editor_probes=True, process_inspection=True
            )
        )
        assert found.name == "from-process"
        assert "editor process 2" in found.source

    def test_failing_probe_is_skipped(self, tmp_path: Path, home: Path, monkeypatch):
        def broken(ctx):
            raise ValueError("bad state file")

        monkeypatch.setattr(
            editor, "EDITOR_PROBES", (broken, lambda ctx: Candidate("survivor", "test"))
        )
        found = active_editor_workspace(context(tmp_path, home, editor_probes=True))
        assert found.name == "survivor"

    def test_uri_to_path(self):
        assert uri_to_path("file:///home/me/my%20app") == Path("/home/me/my app")
        assert uri_to_path("file:///c%3A/Users/me/app") == Path("c:/Users/me/app")
        assert uri_to_path("/plain/path") == Path("/plain/path")
