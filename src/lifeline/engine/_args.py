"""コマンドライン引数の事前走査。

Typer による解析より前に、perf エクスポート設定とセッション名ヒントを
生の引数列から取り出す。未知のオプションは無視する。
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass, replace
from typing import Final

from lifeline.config import CONFIG_FILE_NAME
from lifeline.models.config import LifelineConfig

DEFAULT_CONFIG_PATH: Final[str] = f"./{CONFIG_FILE_NAME}"
"""--config 未指定時の設定ファイルパス。"""

INTERACTIVE_SESSION: Final[str] = "interactive"
"""サブコマンドが指定されなかった場合のセッション名ヒント。"""

_VALUE_OPTIONS: Final[frozenset[str]] = frozenset({"--config", "-c", "--perf-out-dir"})
"""値を次の引数として受け取るオプション。"""

_VALUE_OPTION_PREFIXES: Final[tuple[str, ...]] = ("--config=", "--perf-out-dir=")


@dataclass(frozen=True)
class PerfExportConfig:
    """perf エクスポート設定。

    Attributes:
        enabled: --perf が指定されたか。
        debug: --debug / -d が指定されたか。
        config_path: 解決済みの設定ファイルパス（存在するとは限らない）。
        config_explicit: --config / -c が明示されたか。
        base_dir: パス属性の相対化基準。設定ファイルのディレクトリ。
        out_dir: lifeline-perf.json の出力先ディレクトリ。
        perf_out_dir: --perf-out-dir の生の値。未指定なら None。
    """

    enabled: bool = False
    debug: bool = False
    config_path: str = DEFAULT_CONFIG_PATH
    config_explicit: bool = False
    base_dir: str = ""
    out_dir: str = ""
    perf_out_dir: str | None = None

    @classmethod
    def from_args(cls, args: Sequence[str], cwd: str) -> PerfExportConfig:
        """生の引数列から perf エクスポート設定を構築する。

        Args:
            args: プログラム名を除いたコマンドライン引数。
            cwd: 相対パス解決に使うカレントディレクトリ。空文字の場合は解決しない。

        Returns:
            構築した PerfExportConfig。
        """
        config_path = DEFAULT_CONFIG_PATH
        config_explicit = False
        perf_enabled = False
        perf_out_dir: str | None = None
        debug = False

        i = 0
        while i < len(args):
            arg = args[i]
            if arg == "--":
                break
            if arg == "--perf":
                perf_enabled = True
            elif arg in ("--debug", "-d"):
                debug = True
            elif arg.startswith("--config="):
                config_path = arg.removeprefix("--config=")
                config_explicit = True
            elif arg.startswith("--perf-out-dir="):
                perf_out_dir = arg.removeprefix("--perf-out-dir=")
            elif arg in ("--config", "-c"):
                if i + 1 < len(args):
                    i += 1
                    config_path = args[i]
                    config_explicit = True
            elif arg == "--perf-out-dir":
                if i + 1 < len(args):
                    i += 1
                    perf_out_dir = args[i]
            i += 1

        resolved = config_path
        if cwd and not os.path.isabs(resolved):
            resolved = os.path.join(cwd, resolved)
        resolved = os.path.abspath(resolved)

        base_dir = os.path.dirname(resolved)
        out_dir = base_dir
        if perf_out_dir is not None and perf_out_dir.strip():
            out_dir = (
                perf_out_dir
                if os.path.isabs(perf_out_dir)
                else os.path.join(base_dir, perf_out_dir)
            )

        return cls(
            enabled=perf_enabled,
            debug=debug,
            config_path=resolved,
            config_explicit=config_explicit,
            base_dir=base_dir,
            out_dir=out_dir,
            perf_out_dir=perf_out_dir,
        )

    def with_config(self, config: LifelineConfig) -> PerfExportConfig:
        """設定ファイル由来の perf 設定を補う。コマンドライン引数の指定を優先する。"""
        out_dir = self.out_dir
        perf_out_dir = self.perf_out_dir
        if (perf_out_dir is None or not perf_out_dir.strip()) and config.perf_out_dir:
            perf_out_dir = config.perf_out_dir
            out_dir = (
                perf_out_dir
                if os.path.isabs(perf_out_dir)
                else os.path.join(self.base_dir, perf_out_dir)
            )
        return replace(
            self,
            enabled=self.enabled or config.perf,
            debug=self.debug or config.debug,
            out_dir=out_dir,
            perf_out_dir=perf_out_dir,
        )


def first_command(args: Sequence[str]) -> str | None:
    """オプションとその値を読み飛ばし、最初の位置引数を返す。なければ None。"""
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--":
            return None
        if arg.startswith(_VALUE_OPTION_PREFIXES):
            i += 1
            continue
        if arg in _VALUE_OPTIONS:
            i += 2
            continue
        if arg.startswith("-"):
            i += 1
            continue
        return arg
    return None


def session_name_hint(args: Sequence[str]) -> str:
    """テレメトリのセッション名ヒントを返す。サブコマンドがなければ "interactive"。"""
    command = first_command(args)
    if command is None:
        return INTERACTIVE_SESSION
    return command
