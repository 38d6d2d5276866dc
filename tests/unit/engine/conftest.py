"""engine テスト共通フィクスチャ・ヘルパー。"""

from __future__ import annotations

import signal
from collections.abc import Callable
from unittest.mock import MagicMock

from opentelemetry.context import Context

from lifeline.engine import RunDeps
from lifeline.lifecycle import HandlerRegistry
from lifeline.perf import PerfRecorder


def fire_registered(registry: HandlerRegistry, sig: signal.Signals) -> None:
    """登録済みハンドラをシグナル受信時と同じ逆順で呼び出す。"""
    for _, handler in reversed(registry.snapshot()):
        handler(sig)


def make_deps(
    execute: Callable[[Context], None] | None = None,
    *,
    registry: HandlerRegistry | None = None,
    perf: PerfRecorder | None = None,
    args: list[str] | None = None,
    cwd: str = "",
) -> RunDeps:
    """MagicMock のテレメトリと実 HandlerRegistry で RunDeps を構築する。"""
    registry = registry if registry is not None else HandlerRegistry()
    return RunDeps(
        execute=execute if execute is not None else (lambda ctx: None),
        telemetry_init=MagicMock(),
        telemetry_shutdown=MagicMock(),
        register=registry.register,
        unregister=registry.unregister,
        args=args or [],
        perf=perf if perf is not None else PerfRecorder(),
        getcwd=lambda: cwd,
    )
