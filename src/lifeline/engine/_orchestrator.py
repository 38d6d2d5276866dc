"""Orchestrator: プロセスの起動・実行・終了を span で囲む実行制御。

起動 → 実行 → 終了の順に app.lifecycle 配下の span を記録する。
終了シーケンスは通常終了とシグナル受信の両経路から呼ばれ得るため、
ShutdownGate で高々1回の実行を保証する。
"""

from __future__ import annotations

import logging
import os
import signal
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Final

from opentelemetry.context import Context
from opentelemetry.trace import Span

from lifeline.engine._args import PerfExportConfig, session_name_hint
from lifeline.lifecycle import Handler, HandlerID, ShutdownGate
from lifeline.models.config import LifelineConfig
from lifeline.models.exit_code import ExitCode
from lifeline.perf import (
    LIFECYCLE_SPAN_NAME,
    PerfExportError,
    PerfRecorder,
    export_to_file,
)

logger = logging.getLogger(__name__)

STARTUP_SPAN_NAME: Final[str] = "app.lifecycle.startup"
EXECUTE_SPAN_NAME: Final[str] = "app.lifecycle.execute"
SHUTDOWN_SPAN_NAME: Final[str] = "app.lifecycle.shutdown"


class RunPhase(StrEnum):
    """Orchestrator の実行フェーズ。IDLE から DONE へ一方向に遷移する。"""

    IDLE = "idle"
    STARTING = "starting"
    EXECUTING = "executing"
    SHUTTING_DOWN = "shutting_down"
    DONE = "done"


class ShutdownTrigger(StrEnum):
    """終了シーケンスの起動経路。"""

    NORMAL = "normal"
    SIGNAL = "signal"


@dataclass
class RunDeps:
    """run_with_deps() の依存関係。

    Attributes:
        execute: 本処理。execute span を現在の span とするコンテキストを受け取る。
        telemetry_init: テレメトリ開始関数。起動 span 内で呼ばれる。
        telemetry_shutdown: テレメトリ終了関数。終了シーケンス内で呼ばれる。
        register: シャットダウンハンドラ登録関数。
        unregister: シャットダウンハンドラ削除関数。
        args: プログラム名を除いたコマンドライン引数。
        perf: span の記録先。None の場合は Orchestrator が生成する。
        getcwd: カレントディレクトリ取得関数。
        perf_export: --perf 指定時のエクスポート関数。None の場合は
            lifeline-perf.json に書き出す。
        set_session_hint: セッション名ヒントの通知先。
        set_perf_base_dir: パス属性の相対化基準の通知先。
        config: 解決済みの設定。perf 関連の既定値を補うために使う。
    """

    execute: Callable[[Context], None]
    telemetry_init: Callable[[], None]
    telemetry_shutdown: Callable[[], object]
    register: Callable[[Handler], HandlerID]
    unregister: Callable[[HandlerID], None]
    args: Sequence[str] = field(default_factory=tuple)
    perf: PerfRecorder | None = None
    getcwd: Callable[[], str] = os.getcwd
    perf_export: Callable[[PerfExportConfig], object] | None = None
    set_session_hint: Callable[[str], None] | None = None
    set_perf_base_dir: Callable[[str], None] | None = None
    config: LifelineConfig | None = None


def signal_display_name(sig: signal.Signals) -> str:
    """シグナルの説明文を小文字で返す（SIGINT なら "interrupt"）。"""
    description = signal.strsignal(sig)
    if not description:
        return sig.name.lower()
    # macOS では "Interrupt: 2" の形式
    return description.split(":", 1)[0].strip().lower()


def exit_code_from(exc: BaseException, default: int = ExitCode.FAILURE) -> int:
    """例外が保持する終了コードを返す。整数の exit_code 属性がなければ default。"""
    code = getattr(exc, "exit_code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return default


class Orchestrator:
    """1回分のプロセス実行を制御する。

    run() は1インスタンスにつき1回だけ呼び出せる。
    """

    def __init__(self, deps: RunDeps) -> None:
        self._deps = deps
        self._perf = deps.perf if deps.perf is not None else PerfRecorder()
        self._gate = ShutdownGate()
        self._phase = RunPhase.IDLE
        self._phase_lock = threading.Lock()
        self._execute_lock = threading.Lock()
        self._execute_span: Span | None = None
        self._execute_ended = False
        self._root_span: Span | None = None
        self._perf_config = PerfExportConfig()

    @property
    def phase(self) -> RunPhase:
        with self._phase_lock:
            return self._phase

    @property
    def perf(self) -> PerfRecorder:
        return self._perf

    def _set_phase(self, phase: RunPhase) -> None:
        with self._phase_lock:
            self._phase = phase

    def run(self) -> int:
        """起動・実行・終了を行い、プロセスの終了コードを返す。

        execute が送出した例外はログに記録し、再送出しない。

        Returns:
            成功時 0。失敗時は例外の exit_code 属性、なければ 1。

        Raises:
            RuntimeError: 既に run() を呼び出し済みの場合。
        """
        with self._phase_lock:
            if self._phase is not RunPhase.IDLE:
                raise RuntimeError(f"Orchestrator already ran (phase: {self._phase})")
            self._phase = RunPhase.STARTING

        deps = self._deps
        args = list(deps.args)
        self._perf_config = PerfExportConfig.from_args(args, deps.getcwd())
        if deps.config is not None:
            self._perf_config = self._perf_config.with_config(deps.config)
        if deps.set_perf_base_dir is not None:
            deps.set_perf_base_dir(self._perf_config.base_dir)
        if deps.set_session_hint is not None:
            deps.set_session_hint(session_name_hint(args))

        self._root_span = self._perf.start_span(LIFECYCLE_SPAN_NAME)
        startup_span = self._perf.start_span(STARTUP_SPAN_NAME, parent=self._root_span)
        deps.telemetry_init()
        handler_id = deps.register(self._on_signal)
        startup_span.end()

        try:
            self._set_phase(RunPhase.EXECUTING)
            with self._execute_lock:
                self._execute_span = self._perf.start_span(
                    EXECUTE_SPAN_NAME, parent=self._root_span
                )
                context = self._perf.context_for(self._execute_span)
            try:
                deps.execute(context)
            except Exception as exc:
                self._end_execute(success=False)
                code = exit_code_from(exc)
                logger.error("Execution failed: %s", str(exc) or type(exc).__name__)
                logger.debug("Execution failure detail", exc_info=True)
                return code
            self._end_execute(success=True)
            return ExitCode.SUCCESS
        finally:
            try:
                self._shutdown(ShutdownTrigger.NORMAL, None)
            finally:
                deps.unregister(handler_id)
                self._set_phase(RunPhase.DONE)

    def _on_signal(self, sig: signal.Signals) -> None:
        self._shutdown(ShutdownTrigger.SIGNAL, sig)

    def _end_execute(self, success: bool) -> None:
        with self._execute_lock:
            if self._execute_ended or self._execute_span is None:
                return
            self._execute_ended = True
            span = self._execute_span
        span.set_attribute("success", success)
        span.end()

    def _shutdown(self, trigger: ShutdownTrigger, sig: signal.Signals | None) -> None:
        self._gate.run(lambda: self._shutdown_body(trigger, sig))

    def _shutdown_body(
        self, trigger: ShutdownTrigger, sig: signal.Signals | None
    ) -> None:
        self._set_phase(RunPhase.SHUTTING_DOWN)
        self._end_execute(success=False)

        attributes: dict[str, str] = {"trigger": str(trigger)}
        if sig is not None:
            attributes["signal"] = signal_display_name(sig)
        logger.debug("Shutting down (%s)", ", ".join(attributes.values()))

        shutdown_span = self._perf.start_span(
            SHUTDOWN_SPAN_NAME, parent=self._root_span, attributes=attributes
        )
        shutdown_span.end()
        if self._root_span is not None:
            self._root_span.end()

        try:
            self._deps.telemetry_shutdown()
        except Exception as exc:
            logger.warning("Telemetry shutdown failed: %s", exc)
            logger.debug("Telemetry shutdown failure detail", exc_info=True)
        if self._perf_config.enabled:
            self._export_perf()
        try:
            self._perf.shutdown()
        except Exception as exc:
            logger.debug("Perf recorder shutdown failed: %s", exc)

    def _export_perf(self) -> None:
        export = self._deps.perf_export
        try:
            if export is not None:
                export(self._perf_config)
            else:
                path = export_to_file(
                    self._perf,
                    Path(self._perf_config.out_dir),
                    self._perf_config.base_dir,
                )
                logger.debug("Perf spans written to %s", path)
        except (PerfExportError, OSError) as exc:
            logger.debug("Perf export failed: %s", exc)


def run_with_deps(deps: RunDeps) -> int:
    """deps を使って1回分のプロセス実行を行い、終了コードを返す。"""
    return Orchestrator(deps).run()
