"""TOML 設定ファイルローダー。

パースのみを行い、値の検証は LifelineConfig に任せる。
ファイルが存在しない、読めない、構文が不正といったエラーはそのまま送出する。
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Final

_PYPROJECT_SECTION: Final[tuple[str, ...]] = ("tool", "lifeline")
"""pyproject.toml 内の lifeline 設定セクションへのキー経路。"""


def load_toml_config(path: Path) -> dict[str, object]:
    """TOML ファイル全体を辞書として読み込む。

    Raises:
        FileNotFoundError: ファイルが存在しない場合。
        PermissionError: 読み取り権限がない場合。
        tomllib.TOMLDecodeError: TOML 構文エラーの場合。
    """
    return tomllib.loads(path.read_text(encoding="utf-8"))


def load_pyproject_config(path: Path) -> dict[str, object] | None:
    """pyproject.toml の [tool.lifeline] セクションを返す。

    途中のテーブルが欠けているか、テーブルでない場合は None。
    送出する例外は load_toml_config() と同じ。
    """
    node: object = load_toml_config(path)
    for key in _PYPROJECT_SECTION:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, dict) else None
