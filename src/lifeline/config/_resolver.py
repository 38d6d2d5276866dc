"""設定リゾルバー。

ユーザーグローバル設定、pyproject.toml、lifeline.toml、環境変数、
CLI オプションの順に項目単位でマージし LifelineConfig を構築する。
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from lifeline.config._loader import load_pyproject_config, load_toml_config
from lifeline.config._locator import (
    find_config_file,
    find_pyproject_toml,
    get_user_config_path,
)
from lifeline.models.config import LifelineConfig

DISABLE_TELEMETRY_ENV: Final[str] = "LIFELINE_DISABLE_TELEMETRY"
"""値が真と解釈できる場合にテレメトリを無効化する環境変数。"""

_TRUTHY_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


def merge_config_layers(*layers: Mapping[str, object] | None) -> dict[str, object]:
    """低優先度から順に渡されたレイヤーを浅くマージする。None は読み飛ばす。"""
    merged: dict[str, object] = {}
    for layer in filter(None, layers):
        merged.update(layer)
    return merged


def filter_cli_overrides(cli_options: Mapping[str, object]) -> dict[str, object]:
    """None（未指定）の CLI オプションを取り除く。"""
    return {key: value for key, value in cli_options.items() if value is not None}


def is_truthy(value: str | None) -> bool:
    """環境変数の値を真偽値として解釈する。"""
    return value is not None and value.strip().lower() in _TRUTHY_VALUES


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, object] | None:
    """環境変数から設定レイヤーを構築する。該当する変数がなければ None。"""
    env = os.environ if environ is None else environ
    if is_truthy(env.get(DISABLE_TELEMETRY_ENV)):
        return {"telemetry": False}
    return None


def resolve_config(
    start_dir: Path | None = None,
    config_path: Path | None = None,
    cli_overrides: Mapping[str, object] | None = None,
    environ: Mapping[str, str] | None = None,
) -> LifelineConfig:
    """設定ソースを解決し LifelineConfig を構築する。

    優先順位: CLI > 環境変数 > lifeline.toml（--config 指定時はそのファイル）
              > pyproject.toml [tool.lifeline] > ~/.config/lifeline/config.toml
              > デフォルト値

    設定ファイルが存在しない場合は該当レイヤーをスキップする。

    Args:
        start_dir: 探索開始ディレクトリ。None の場合はカレントディレクトリ。
        config_path: 明示的に指定された設定ファイル。None の場合は探索する。
        cli_overrides: CLI オプションの辞書。None 値は未指定扱い。
        environ: 環境変数。None の場合は os.environ。

    Returns:
        解決済みの LifelineConfig インスタンス。

    Raises:
        pydantic.ValidationError: マージ後の設定が不正な場合。
        tomllib.TOMLDecodeError: 設定ファイルの TOML 構文が不正な場合。
        PermissionError: 設定ファイルの読み取り権限がない場合。
    """
    start = start_dir if start_dir is not None else Path.cwd()

    pyproject_path = find_pyproject_toml(start)
    file_path = config_path if config_path is not None else find_config_file(start)

    merged = merge_config_layers(
        _load_optional(get_user_config_path()),
        load_pyproject_config(pyproject_path) if pyproject_path is not None else None,
        _load_optional(file_path),
        env_overrides(environ),
        filter_cli_overrides(cli_overrides) if cli_overrides is not None else None,
    )
    return LifelineConfig.model_validate(merged)


def _load_optional(path: Path | None) -> dict[str, object] | None:
    """存在しない設定ファイルは None として扱う。"""
    if path is None:
        return None
    try:
        return load_toml_config(path)
    except FileNotFoundError:
        return None
