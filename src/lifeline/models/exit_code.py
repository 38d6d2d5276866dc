"""ExitCode: 終了コードの定義とシグナルからの変換。

SIGINT/SIGTERM は慣例に従い 128 + シグナル番号を返す。
"""

from __future__ import annotations

import signal
from enum import IntEnum


class ExitCode(IntEnum):
    """プロセス終了コード。

    0/1 は通常終了と汎用エラー、130/143 はシグナル受信時のフォールバック終了。
    """

    SUCCESS = 0
    FAILURE = 1
    INTERRUPTED = 130
    TERMINATED = 143


_SIGNAL_EXIT_CODES: dict[signal.Signals, ExitCode] = {
    signal.SIGINT: ExitCode.INTERRUPTED,
    signal.SIGTERM: ExitCode.TERMINATED,
}


def exit_code_for(sig: signal.Signals | int) -> ExitCode:
    """シグナルに対応するプロセス終了コードを返す。

    Args:
        sig: 受信したシグナル。

    Returns:
        SIGINT → 130、SIGTERM → 143、それ以外 → 1。
    """
    return _SIGNAL_EXIT_CODES.get(sig, ExitCode.FAILURE)  # type: ignore[call-overload]


class ExitCodeError(Exception):
    """特定の終了コードを伴うエラー。

    コマンドが標準以外の終了コード（子プロセスの終了コード等）を
    オーケストレーターに伝えるために送出する。
    """

    def __init__(self, exit_code: int, message: str = "") -> None:
        self.exit_code = exit_code
        self.message = message
        super().__init__(message or f"exit code {exit_code}")
