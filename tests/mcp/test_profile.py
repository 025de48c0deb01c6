"""Tests for the profile auth reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from mcplink.mcp.models import AuthProfile
from mcplink.mcp.profile import PROFILE_RELATIVE_PATH, default_profile_path, read_profile_auth


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "default.toml"
    path.write_text(text)
    return path


class TestReadProfileAuth:
    def test_reads_both_keys(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "[default]\naccess_type = 'saml'\naccess_id = \"p-abc123\"\n")
        assert read_profile_auth(path) == AuthProfile(access_type="saml", access_id="p-abc123")

    def test_unquoted_and_spacing(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "  access_type=oidc  \naccess_id   =   p-1\n")
        assert read_profile_auth(path) == AuthProfile(access_type="oidc", access_id="p-1")

    def test_missing_file(self, tmp_path: Path) -> None:
        assert read_profile_auth(tmp_path / "nope.toml") is None

    def test_missing_key_is_absent(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "access_type = 'saml'\n")
        assert read_profile_auth(path) is None

    def test_empty_value_is_absent(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "access_type = ''\naccess_id = 'p-1'\n")
        assert read_profile_auth(path) is None

    def test_malformed_lines_ignored(self, tmp_path: Path) -> None:
        text = "garbage line\n=== \n# comment\naccess_type = saml\naccess_id = p-9\n"
        path = _write(tmp_path, text)
        assert read_profile_auth(path) == AuthProfile(access_type="saml", access_id="p-9")

    def test_similar_keys_not_confused(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "access_type_hint = x\naccess_type = saml\naccess_id = p-1\n")
        assert read_profile_auth(path) == AuthProfile(access_type="saml", access_id="p-1")

    def test_unreadable_file_warns(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "binary.toml"
        path.write_bytes(b"\xff\xfe\x00access_type")
        assert read_profile_auth(path) is None
        assert "Could not read profile" in caplog.text

    def test_default_path_under_home(self, fake_home: Path) -> None:
        assert default_profile_path() == fake_home / PROFILE_RELATIVE_PATH

    def test_default_path_used(self, fake_home: Path) -> None:
        profile = fake_home / PROFILE_RELATIVE_PATH
        profile.parent.mkdir(parents=True)
        profile.write_text("access_type = saml\naccess_id = p-home\n")
        assert read_profile_auth() == AuthProfile(access_type="saml", access_id="p-home")
