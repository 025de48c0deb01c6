"""Tests for command path resolution."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from mcplink.mcp.resolver import SYSTEM_BIN_DIRS, common_bin_dirs, resolve_command_path


def _make_executable(directory: Path, name: str, mode: int = 0o755) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text("#!/bin/sh\nexit 0\n")
    path.chmod(mode)
    return path


class TestResolveCommandPath:
    def test_absolute_path_unchanged(self) -> None:
        assert resolve_command_path("/does/not/exist") == "/does/not/exist"

    def test_found_in_path(self, tmp_path: Path) -> None:
        exe = _make_executable(tmp_path / "bin", "mytool")
        assert resolve_command_path("mytool", path_env=str(tmp_path / "bin")) == str(exe)

    def test_first_path_entry_wins(self, tmp_path: Path) -> None:
        first = _make_executable(tmp_path / "a", "mytool")
        _make_executable(tmp_path / "b", "mytool")
        path_env = os.pathsep.join([str(tmp_path / "a"), str(tmp_path / "b")])
        assert resolve_command_path("mytool", path_env=path_env) == str(first)

    def test_non_executable_skipped(self, tmp_path: Path) -> None:
        _make_executable(tmp_path / "a", "mytool", mode=0o644)
        second = _make_executable(tmp_path / "b", "mytool")
        path_env = os.pathsep.join([str(tmp_path / "a"), str(tmp_path / "b")])
        assert resolve_command_path("mytool", path_env=path_env) == str(second)

    def test_directory_with_same_name_skipped(self, tmp_path: Path) -> None:
        (tmp_path / "a" / "mytool").mkdir(parents=True)
        assert resolve_command_path("mytool", path_env=str(tmp_path / "a")) == "mytool"

    def test_not_found_returns_original(self, tmp_path: Path) -> None:
        assert resolve_command_path("no_such_tool_xyz", path_env=str(tmp_path)) == "no_such_tool_xyz"

    def test_falls_back_to_user_local_bin(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        exe = _make_executable(tmp_path / ".local" / "bin", "only_in_local_xyz")
        assert resolve_command_path("only_in_local_xyz", path_env="") == str(exe)

    def test_uses_environment_path_by_default(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        exe = _make_executable(tmp_path / "bin", "env_tool_xyz")
        monkeypatch.setenv("PATH", str(tmp_path / "bin"))
        assert resolve_command_path("env_tool_xyz") == str(exe)


class TestCommonBinDirs:
    def test_system_dirs_first(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        dirs = common_bin_dirs()
        assert dirs[: len(SYSTEM_BIN_DIRS)] == list(SYSTEM_BIN_DIRS)
        assert dirs[-2:] == [str(tmp_path / ".local" / "bin"), str(tmp_path / "bin")]
