"""HandlerRegistry: シャットダウンハンドラの登録管理。

登録順序を保持し、ディスパッチ用のスナップショットをロック外で利用できる形で返す。
変更はすべて単一の ReadWriteLock で保護される。
"""

from __future__ import annotations

import itertools
import signal
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Final, NewType

Handler = Callable[[signal.Signals], None]
"""シャットダウン時に受信シグナルを引数として呼び出されるコールバック。"""

HandlerID = NewType("HandlerID", int)
"""登録ハンドラの識別子。プロセス内で単調増加し再利用されない。"""

NO_HANDLER: Final[HandlerID] = HandlerID(0)
"""ハンドラ未登録を表す予約値。None を登録した場合に返る。"""


class ReadWriteLock:
    """複数リーダー・単一ライターのロック。

    ライター待機中は新規リーダーを待たせ、ライターの飢餓を防ぐ。
    再入不可。
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """共有ロックを取得する。"""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """排他ロックを取得する。"""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class HandlerRegistry:
    """シャットダウンハンドラと登録順序のスレッドセーフなストア。

    ID は 1 から採番され、登録解除後も再利用されない。
    """

    def __init__(self) -> None:
        self._lock = ReadWriteLock()
        self._ids = itertools.count(1)
        self._handlers: dict[HandlerID, Handler] = {}
        self._order: list[HandlerID] = []

    def register(self, handler: Handler | None) -> HandlerID:
        """ハンドラを登録し、割り当てた ID を返す。

        Args:
            handler: 登録するコールバック。None の場合は何もしない。

        Returns:
            割り当てた HandlerID。handler が None なら NO_HANDLER。
        """
        if handler is None:
            return NO_HANDLER

        with self._lock.write():
            handler_id = HandlerID(next(self._ids))
            self._handlers[handler_id] = handler
            self._order.append(handler_id)
        return handler_id

    def unregister(self, handler_id: HandlerID) -> None:
        """ハンドラを登録解除する。0 や未登録 ID は無視する。"""
        if handler_id == NO_HANDLER:
            return

        with self._lock.write():
            if self._handlers.pop(handler_id, None) is None:
                return
            self._order.remove(handler_id)

    def snapshot(self) -> list[tuple[HandlerID, Handler]]:
        """登録順のハンドラ一覧をコピーして返す。

        マップと順序の両方を共有ロック下でコピーし、ロック解放後に返す。
        呼び出し側はロックを保持せずにハンドラを実行できるため、
        ハンドラ内での register/unregister がデッドロックしない。

        Returns:
            (HandlerID, Handler) のリスト。登録順（古い順）。
        """
        with self._lock.read():
            order = list(self._order)
            handlers = dict(self._handlers)
        return [(hid, handlers[hid]) for hid in order if hid in handlers]

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._order)

    def __contains__(self, handler_id: object) -> bool:
        with self._lock.read():
            return handler_id in self._handlers
