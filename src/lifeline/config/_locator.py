"""設定ファイル探索。

lifeline.toml と pyproject.toml を開始ディレクトリから親方向にたどって探す。
"""

from __future__ import annotations

from pathlib import Path
from typing import Final

CONFIG_FILE_NAME: Final[str] = "lifeline.toml"
"""プロジェクト設定ファイル名。"""

_PYPROJECT_FILE_NAME: Final[str] = "pyproject.toml"


def _nearest_file(start: Path, name: str) -> Path | None:
    """start とその祖先から name という通常ファイルを探す。

    同名のディレクトリは無視して探索を続ける。
    """
    base = start.resolve()
    for directory in (base, *base.parents):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_config_file(start: Path) -> Path | None:
    """最も近い lifeline.toml を返す。見つからなければ None。"""
    return _nearest_file(start, CONFIG_FILE_NAME)


def find_pyproject_toml(start: Path) -> Path | None:
    """最も近い pyproject.toml を返す。見つからなければ None。"""
    return _nearest_file(start, _PYPROJECT_FILE_NAME)


def get_user_config_path() -> Path:
    """ユーザーグローバル設定 ~/.config/lifeline/config.toml のパスを返す。

    存在確認は行わない。
    """
    return Path.home() / ".config" / "lifeline" / "config.toml"
