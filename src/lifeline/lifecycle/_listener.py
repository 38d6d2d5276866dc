"""SignalListener: SIGINT/SIGTERM を待ち受けるプロセス常駐リスナー。

OS シグナルハンドラはシグナルをキューに入れるだけで、ディスパッチと
プロセス終了はバックグラウンドスレッドが行う。上位のハンドラが先に
プロセスを終了させなかった場合の最終手段となる。
"""

from __future__ import annotations

import logging
import os
import queue
import signal
import sys
import threading
from collections.abc import Callable
from contextlib import suppress
from types import FrameType
from typing import Final

from lifeline.models.exit_code import exit_code_for

logger = logging.getLogger(__name__)

DEFAULT_SIGNALS: Final[tuple[signal.Signals, ...]] = (signal.SIGINT, signal.SIGTERM)
"""待ち受けるシグナル。"""

SignalInstaller = Callable[[int, object], object]
"""signal.signal 互換のハンドラ登録関数。戻り値は直前のハンドラ。"""


def hard_exit(code: int) -> None:
    """標準出力をフラッシュしてから即時にプロセスを終了する。

    リスナースレッドからは sys.exit() でプロセスを終了できないため os._exit を使う。
    """
    for stream in (sys.stdout, sys.stderr):
        with suppress(OSError, ValueError, AttributeError):
            stream.flush()
    os._exit(code)


class SignalListener:
    """シグナル受信時にディスパッチを行い、対応する終了コードでプロセスを終了する。

    Args:
        dispatch: 受信シグナルを引数に呼び出すディスパッチ関数。
        exit_func: 終了コードを受け取りプロセスを終了する関数。
        install: signal.signal 互換のハンドラ登録関数。
        signals: 待ち受けるシグナル。
    """

    def __init__(
        self,
        dispatch: Callable[[signal.Signals], object],
        *,
        exit_func: Callable[[int], None] = hard_exit,
        install: SignalInstaller = signal.signal,
        signals: tuple[signal.Signals, ...] = DEFAULT_SIGNALS,
    ) -> None:
        self._dispatch = dispatch
        self._exit = exit_func
        self._install = install
        self._signals = signals
        self._queue: queue.Queue[signal.Signals | None] = queue.Queue(maxsize=1)
        self._previous: dict[signal.Signals, object] = {}
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """OS シグナルハンドラを登録し、待ち受けスレッドを起動する。

        メインスレッド以外から呼ばれハンドラを登録できない場合は警告を出し、
        スレッドのみ起動する（deliver() による通知は引き続き有効）。
        """
        if self._thread is not None:
            return

        for sig in self._signals:
            try:
                self._previous[sig] = self._install(sig, self._on_signal)
            except (ValueError, OSError) as exc:
                logger.warning("Could not hook signal %s: %s", sig.name, exc)

        self._thread = threading.Thread(
            target=self._run, name="lifeline-signal-listener", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """直前の OS シグナルハンドラを復元し、待ち受けスレッドを停止する。"""
        for sig, previous in self._previous.items():
            try:
                self._install(sig, previous)
            except (ValueError, OSError, TypeError) as exc:
                logger.debug("Could not restore handler for %s: %s", sig.name, exc)
        self._previous.clear()

        thread = self._thread
        self._thread = None
        if thread is None:
            return
        # 満杯なら既にシグナル処理中のため停止通知は不要
        with suppress(queue.Full):
            self._queue.put_nowait(None)

    def deliver(self, sig: signal.Signals) -> None:
        """シグナル受信を模擬する。キューが満杯なら破棄する。"""
        with suppress(queue.Full):
            self._queue.put_nowait(sig)

    def _on_signal(self, signum: int, frame: FrameType | None) -> None:
        self.deliver(signal.Signals(signum))

    def _run(self) -> None:
        sig = self._queue.get()
        if sig is None:
            return
        logger.debug("Received %s, running shutdown handlers", sig.name)
        try:
            self._dispatch(sig)
        except BaseException:
            # 終了コードでの終了は必ず行う
            logger.error("Shutdown dispatch failed on %s", sig.name, exc_info=True)
        self._exit(exit_code_for(sig))
