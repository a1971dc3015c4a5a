"""Locate the Claude Code configuration directory for the current platform."""

import os
import sys
from pathlib import Path
from typing import Mapping


def get_config_dir(
    platform: str | None = None,
    home: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Return the Claude Code config directory. Existence is not checked.

    macOS: ~/.claude
    Linux: ~/.config/claude if it exists, else ~/.claude
    Windows: %APPDATA%/Claude
    """
    if platform is None:
        platform = sys.platform
    home = Path(home) if home is not None else Path.home()
    if environ is None:
        environ = os.environ

    if platform == "darwin":
        return home / ".claude"
    if platform.startswith("linux"):
        xdg_path = home / ".config" / "claude"
        return xdg_path if xdg_path.exists() else home / ".claude"
    if platform == "win32":
        return Path(environ.get("APPDATA") or home) / "Claude"
    return home / ".claude"


def get_projects_dir(config_dir: str | Path) -> Path:
    return Path(config_dir) / "projects"
