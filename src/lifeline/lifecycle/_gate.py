"""ShutdownGate: シャットダウンシーケンスの高々1回実行を保証するゲート。

通常終了とシグナル受信という独立した2経路から呼ばれるため、
状態遷移はロック下の check-and-set で行う。
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import StrEnum


class GateState(StrEnum):
    """ゲートの状態。NOT_STARTED からのみ遷移可能。"""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ShutdownGate:
    """本体を高々1回だけ実行するゲート。

    最初に run() を呼んだ呼び出し元だけが本体を実行する。
    本体実行中に別スレッドから呼ばれた場合は完了まで待機し、
    完了後に呼ばれた場合は即座に戻る。いずれも本体は実行しない。
    本体を実行中のスレッド自身からの再呼び出しは待機せずに戻る。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._state = GateState.NOT_STARTED
        self._owner: int | None = None
        self._done = threading.Event()

    @property
    def state(self) -> GateState:
        with self._lock:
            return self._state

    def _try_enter(self) -> bool:
        with self._lock:
            if self._state is not GateState.NOT_STARTED:
                return False
            self._state = GateState.IN_PROGRESS
            self._owner = threading.get_ident()
            return True

    def run(self, body: Callable[[], None]) -> bool:
        """ゲートを通過できた場合のみ body を実行する。

        body が例外を送出してもゲートは COMPLETED になり、例外は呼び出し元に伝播する。

        Args:
            body: シャットダウンシーケンス本体。

        Returns:
            この呼び出しで body を実行した場合 True。
        """
        if not self._try_enter():
            if self._owner != threading.get_ident():
                self._done.wait()
            return False

        try:
            body()
        finally:
            with self._lock:
                self._state = GateState.COMPLETED
            self._done.set()
        return True
