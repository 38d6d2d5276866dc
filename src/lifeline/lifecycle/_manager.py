"""LifecycleManager: ハンドラレジストリとシグナルリスナーの統合。

プロセス起動時に1つだけ生成し、アプリケーション全体に受け渡す。
最初のハンドラ登録時にリスナーを1回だけ起動する。
"""

from __future__ import annotations

import logging
import signal
import threading
from collections.abc import Callable
from types import TracebackType

from lifeline.lifecycle._dispatcher import HandlerOutcome, dispatch_handlers
from lifeline.lifecycle._listener import SignalListener
from lifeline.lifecycle._registry import (
    NO_HANDLER,
    Handler,
    HandlerID,
    HandlerRegistry,
)

logger = logging.getLogger(__name__)

ListenerFactory = Callable[[Callable[[signal.Signals], object]], SignalListener]
"""ディスパッチ関数を受け取り SignalListener を生成するファクトリ。"""


class LifecycleManager:
    """シャットダウンハンドラの登録とシグナル駆動のディスパッチを管理する。

    Args:
        listener_factory: SignalListener のファクトリ。テストでは exit_func や
            install を差し替えたリスナーを渡す。
    """

    def __init__(self, listener_factory: ListenerFactory = SignalListener) -> None:
        self._registry = HandlerRegistry()
        self._listener_factory = listener_factory
        self._listener: SignalListener | None = None
        self._start_lock = threading.Lock()
        self._started = False

    @property
    def listener(self) -> SignalListener | None:
        """起動済みのリスナー。未起動なら None。"""
        return self._listener

    @property
    def handler_count(self) -> int:
        return len(self._registry)

    def register(self, handler: Handler | None) -> HandlerID:
        """シグナル受信時に実行するハンドラを登録する。

        ハンドラは登録の逆順で実行される。None を渡した場合は NO_HANDLER を返し、
        リスナーも起動しない。

        Args:
            handler: 受信シグナルを引数に取るコールバック。

        Returns:
            unregister() に渡す HandlerID。
        """
        if handler is None:
            return NO_HANDLER

        self._ensure_listener()
        handler_id = self._registry.register(handler)
        logger.debug("Registered shutdown handler %d", handler_id)
        return handler_id

    def unregister(self, handler_id: HandlerID) -> None:
        """登録済みハンドラを削除する。0 や未登録 ID は無視する。"""
        self._registry.unregister(handler_id)

    def dispatch(self, sig: signal.Signals) -> list[HandlerOutcome]:
        """登録済みハンドラを逆順に実行する。ハンドラの失敗は伝播しない。"""
        return dispatch_handlers(self._registry.snapshot(), sig)

    def close(self) -> None:
        """リスナーを停止し、直前の OS シグナルハンドラを復元する。

        停止後に register() してもリスナーは再起動しない。
        """
        with self._start_lock:
            listener = self._listener
            self._listener = None
        if listener is not None:
            listener.stop()

    def _ensure_listener(self) -> None:
        with self._start_lock:
            if self._started:
                return
            self._started = True
            listener = self._listener_factory(self.dispatch)
            listener.start()
            self._listener = listener

    def __enter__(self) -> LifecycleManager:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
