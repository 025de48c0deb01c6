"""Best-effort reader for the local CLI profile.

The profile is a TOML-ish ``key = value`` file; only ``access_type`` and
``access_id`` are looked at, so no TOML parser is involved and odd lines are
simply ignored.
"""

from __future__ import annotations

import logging
from pathlib import Path

from mcplink.mcp.models import AuthProfile

logger = logging.getLogger(__name__)

PROFILE_RELATIVE_PATH = Path(".akeyless") / "profiles" / "default.toml"

_QUOTES = "'\" "


def default_profile_path() -> Path:
    return Path.home() / PROFILE_RELATIVE_PATH


def _value_of(line: str) -> str:
    _, _, value = line.partition("=")
    return value.strip().strip(_QUOTES)


def read_profile_auth(path: Path | None = None) -> AuthProfile | None:
    """Read ``access_type``/``access_id`` from the profile at *path*.

    Returns ``None`` when the file is missing, unreadable, or either value is
    absent or empty.  Never raises.
    """
    profile_path = path or default_profile_path()
    try:
        if not profile_path.is_file():
            return None
        lines = profile_path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Could not read profile %s: %s", profile_path, exc)
        return None

    access_type: str | None = None
    access_id: str | None = None
    for raw in lines:
        line = raw.strip()
        if "=" not in line:
            continue
        key = line.partition("=")[0].strip()
        if key == "access_type":
            access_type = _value_of(line)
        elif key == "access_id":
            access_id = _value_of(line)

    if access_type and access_id:
        return AuthProfile(access_type=access_type, access_id=access_id)
    return None
