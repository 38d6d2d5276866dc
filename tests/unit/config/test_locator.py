"""設定ファイル探索のテスト。"""

from __future__ import annotations

from pathlib import Path

import pytest

from lifeline.config._locator import (
    CONFIG_FILE_NAME,
    find_config_file,
    find_pyproject_toml,
    get_user_config_path,
)


class TestFindConfigFile:
    def test_in_current_directory(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("", encoding="utf-8")
        assert find_config_file(tmp_path) == tmp_path.resolve() / CONFIG_FILE_NAME

    def test_in_parent_directory(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILE_NAME).write_text("", encoding="utf-8")
        child = tmp_path / "a" / "b"
        child.mkdir(parents=True)
        assert find_config_file(child) == tmp_path.resolve() / CONFIG_FILE_NAME

    def test_directory_with_config_name_ignored(self, tmp_path: Path) -> None:
        """同名のディレクトリは設定ファイルとして扱わない。"""
        (tmp_path / CONFIG_FILE_NAME).mkdir()
        result = find_config_file(tmp_path)
        assert result != tmp_path.resolve() / CONFIG_FILE_NAME


class TestFindPyprojectToml:
    def test_in_parent_directory(self, tmp_path: Path) -> None:
        (tmp_path / "pyproject.toml").write_text("[project]\n", encoding="utf-8")
        child = tmp_path / "src"
        child.mkdir()
        assert find_pyproject_toml(child) == tmp_path.resolve() / "pyproject.toml"


class TestGetUserConfigPath:
    def test_under_home_config(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HOME", str(tmp_path))
        assert get_user_config_path() == tmp_path / ".config" / "lifeline" / "config.toml"
