"""CLI テスト共通フィクスチャ・ヘルパー。"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import patch

import pytest

from lifeline.config import DISABLE_TELEMETRY_ENV
from lifeline.lifecycle import LifecycleManager
from lifeline.telemetry import TELEMETRY_FILE_ENV
from tests.unit.lifecycle.conftest import (
    ExitRecorder,
    FakeInstaller,
    make_listener_factory,
)

PATCH_LIFECYCLE_MANAGER = "lifeline.cli._app.LifecycleManager"
PATCH_VERSION = "lifeline.cli._app.importlib.metadata.version"


def child_argv(code: str) -> list[str]:
    """現在の Python で code を実行する子コマンドの引数列を返す。"""
    return [sys.executable, "-c", code]


@pytest.fixture
def telemetry_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """テレメトリ出力先とホームディレクトリを tmp_path 配下に隔離する。"""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv(DISABLE_TELEMETRY_ENV, raising=False)
    path = tmp_path / "telemetry.jsonl"
    monkeypatch.setenv(TELEMETRY_FILE_ENV, str(path))
    monkeypatch.chdir(tmp_path)
    return path


@pytest.fixture
def fake_lifecycle() -> Iterator[ExitRecorder]:
    """main() が生成する LifecycleManager の OS シグナル登録とプロセス終了を差し替える。"""
    exit_recorder = ExitRecorder()
    factory = make_listener_factory(FakeInstaller(), exit_recorder)
    with patch(
        PATCH_LIFECYCLE_MANAGER, side_effect=lambda: LifecycleManager(factory)
    ):
        yield exit_recorder
