"""Command path resolution for the server executable.

GUI launchers and service managers often start processes with a minimal
``PATH``, so a bare command such as ``akeyless`` is looked up in ``PATH`` and
then in a fixed list of common install directories.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SYSTEM_BIN_DIRS: tuple[str, ...] = (
    "/opt/homebrew/bin",
    "/usr/local/bin",
    "/usr/bin",
    "/bin",
)


def common_bin_dirs() -> list[str]:
    """System bin directories followed by the user's local bin directories."""
    home = Path.home()
    return [*SYSTEM_BIN_DIRS, str(home / ".local" / "bin"), str(home / "bin")]


def resolve_command_path(command: str, *, path_env: str | None = None) -> str:
    """Return an absolute, executable path for *command*.

    Absolute paths are returned unchanged.  When nothing matches, *command* is
    returned as given so the spawn fails with the OS "not found" error.
    """
    if command.startswith("/"):
        return command

    if path_env is None:
        path_env = os.environ.get("PATH", "")
    search = [p for p in path_env.split(os.pathsep) if p] + common_bin_dirs()

    for directory in search:
        candidate = Path(directory) / command
        if candidate.is_file() and os.access(candidate, os.X_OK):
            resolved = str(candidate.absolute())
            logger.debug("Resolved %s -> %s", command, resolved)
            return resolved

    logger.debug("Could not resolve %s in PATH or common locations", command)
    return command
