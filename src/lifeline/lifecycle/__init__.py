"""プロセスライフサイクル管理。

シャットダウンハンドラの登録、SIGINT/SIGTERM の待ち受け、
登録逆順でのハンドラ実行、シャットダウンの高々1回実行ゲートを提供する。
"""

from lifeline.lifecycle._dispatcher import HandlerOutcome, dispatch_handlers
from lifeline.lifecycle._gate import GateState, ShutdownGate
from lifeline.lifecycle._listener import DEFAULT_SIGNALS, SignalListener, hard_exit
from lifeline.lifecycle._manager import LifecycleManager
from lifeline.lifecycle._registry import (
    NO_HANDLER,
    Handler,
    HandlerID,
    HandlerRegistry,
    ReadWriteLock,
)

__all__ = [
    "DEFAULT_SIGNALS",
    "GateState",
    "Handler",
    "HandlerID",
    "HandlerOutcome",
    "HandlerRegistry",
    "LifecycleManager",
    "NO_HANDLER",
    "ReadWriteLock",
    "ShutdownGate",
    "SignalListener",
    "dispatch_handlers",
    "hard_exit",
]
