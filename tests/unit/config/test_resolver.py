"""設定リゾルバーのテスト。"""

from __future__ import annotations

import tomllib
from pathlib import Path

import pytest
from pydantic import ValidationError

from lifeline.config import DISABLE_TELEMETRY_ENV, is_truthy, resolve_config
from lifeline.config._resolver import (
    env_overrides,
    filter_cli_overrides,
    merge_config_layers,
)
from lifeline.models.config import LogLevel


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """ユーザーグローバル設定を tmp_path 配下に隔離する。"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv(DISABLE_TELEMETRY_ENV, raising=False)
    return home


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestMergeConfigLayers:
    def test_empty(self) -> None:
        assert merge_config_layers() == {}
        assert merge_config_layers(None, None) == {}

    def test_later_layer_wins(self) -> None:
        result = merge_config_layers({"perf": False, "debug": True}, None, {"perf": True})
        assert result == {"perf": True, "debug": True}


class TestFilterCliOverrides:
    def test_none_removed_false_kept(self) -> None:
        assert filter_cli_overrides({"perf": None, "debug": False}) == {"debug": False}


class TestEnvOverrides:
    @pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
    def test_truthy_disables_telemetry(self, value: str) -> None:
        assert env_overrides({DISABLE_TELEMETRY_ENV: value}) == {"telemetry": False}

    @pytest.mark.parametrize("value", ["0", "false", ""])
    def test_falsy_ignored(self, value: str) -> None:
        assert env_overrides({DISABLE_TELEMETRY_ENV: value}) is None

    def test_is_truthy_none(self) -> None:
        assert is_truthy(None) is False


class TestResolveConfigLayers:
    def test_defaults(self, tmp_path: Path) -> None:
        config = resolve_config(start_dir=tmp_path, environ={})
        assert config.perf is False
        assert config.telemetry is True

    def test_user_global_applied(self, tmp_path: Path, _isolated_home: Path) -> None:
        _write(_isolated_home / ".config" / "lifeline" / "config.toml", 'log_level = "info"\n')
        config = resolve_config(start_dir=tmp_path, environ={})
        assert config.log_level == LogLevel.INFO

    def test_pyproject_overrides_user(self, tmp_path: Path, _isolated_home: Path) -> None:
        _write(_isolated_home / ".config" / "lifeline" / "config.toml", "perf = false\n")
        _write(tmp_path / "pyproject.toml", "[tool.lifeline]\nperf = true\n")
        assert resolve_config(start_dir=tmp_path, environ={}).perf is True

    def test_lifeline_toml_overrides_pyproject(self, tmp_path: Path) -> None:
        _write(tmp_path / "pyproject.toml", '[tool.lifeline]\nperf_out_dir = "a"\n')
        _write(tmp_path / "lifeline.toml", 'perf_out_dir = "b"\n')
        assert resolve_config(start_dir=tmp_path, environ={}).perf_out_dir == "b"

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", "debug = false\n")
        explicit = _write(tmp_path / "cfg" / "custom.toml", "debug = true\n")
        config = resolve_config(start_dir=tmp_path, config_path=explicit, environ={})
        assert config.debug is True

    def test_missing_explicit_config_skipped(self, tmp_path: Path) -> None:
        config = resolve_config(
            start_dir=tmp_path, config_path=tmp_path / "nope.toml", environ={}
        )
        assert config.debug is False

    def test_env_overrides_file(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", "telemetry = true\n")
        config = resolve_config(
            start_dir=tmp_path, environ={DISABLE_TELEMETRY_ENV: "1"}
        )
        assert config.telemetry is False

    def test_cli_overrides_everything(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", "perf = false\n")
        config = resolve_config(
            start_dir=tmp_path,
            cli_overrides={"perf": True, "debug": None},
            environ={},
        )
        assert config.perf is True
        assert config.debug is False


class TestResolveConfigErrors:
    def test_invalid_value_raises_validation_error(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", 'perf = "yes"\n')
        with pytest.raises(ValidationError):
            resolve_config(start_dir=tmp_path, environ={})

    def test_unknown_key_raises_validation_error(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", "timeout = 3\n")
        with pytest.raises(ValidationError):
            resolve_config(start_dir=tmp_path, environ={})

    def test_toml_syntax_error_propagates(self, tmp_path: Path) -> None:
        _write(tmp_path / "lifeline.toml", "perf = \n")
        with pytest.raises(tomllib.TOMLDecodeError):
            resolve_config(start_dir=tmp_path, environ={})
