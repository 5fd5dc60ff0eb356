"""Project identity: which namespace does this process store memories under?

Detection cascade, highest priority first:

    1. User Configuration       MCP_PROJECT_NAME / MCP_PROJECT_PATH / --project
    2. Project Marker File      .mcp-project in cwd or up to 4 parents
    3. Active Editor Workspace  editor storage.json / workspaceStorage / processes
    4. Package Manifest         package.json, pyproject.toml, Cargo.toml, composer.json
    5. Directory Name           cwd basename, when cwd has project markers
    6. Editor Context           VSCODE_* env vars, argv folders, cwd parent
    7. Smart Pattern Detection  recent project under ~/Projects, ~/dev, ...
    8. Fallback                 cwd basename, or "unknown-project"
"""

from memory_bank.project.resolver import ProjectIdentity, ProjectResolver
from memory_bank.project.strategies import DetectionContext

__all__ = ["DetectionContext", "ProjectIdentity", "ProjectResolver"]
