"""TelemetrySession: プロセス1回分の利用状況テレメトリ。

init() と shutdown() はそれぞれ高々1回だけ処理を行う。
shutdown() はセッションを1件の SessionRecord として JSONL に書き出す。
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

from lifeline.models.exit_code import ExitCodeError
from lifeline.models.span import ExportSpan
from lifeline.models.telemetry import CommandRecord, SessionRecord
from lifeline.perf import (
    PerfExportError,
    PerfRecorder,
    build_export_tree,
    command_duration_ns,
    session_duration_ns,
)
from lifeline.telemetry._writer import (
    TelemetryWriteError,
    append_session_record,
    default_telemetry_path,
)

logger = logging.getLogger(__name__)

MULTI_COMMAND_SESSION: Final[str] = "interactive"
"""複数コマンドを記録したセッションの名前。"""

UNKNOWN_SESSION: Final[str] = "unknown"

_NS_PER_MS: Final[float] = 1_000_000.0

_ERROR_CATEGORIES: Final[tuple[tuple[type[BaseException], str], ...]] = (
    (KeyboardInterrupt, "canceled"),
    (FileNotFoundError, "command_not_found"),
    (PermissionError, "permission_denied"),
    (PerfExportError, "perf_export"),
    (ExitCodeError, "exit_status"),
)


def error_category(error: BaseException | None) -> str | None:
    """失敗をテレメトリ用の分類名に変換する。None なら None、未知の例外は "unknown"。"""
    if error is None:
        return None
    for error_type, category in _ERROR_CATEGORIES:
        if isinstance(error, error_type):
            return category
    return "unknown"


def resolve_session_name(hint: str, commands: tuple[CommandRecord, ...]) -> str:
    """記録済みコマンドとヒントからセッション名を決める。

    複数コマンドなら "interactive"、1件ならそのコマンド名、
    なければヒント、ヒントもなければ "unknown"。
    """
    if len(commands) > 1:
        return MULTI_COMMAND_SESSION
    if len(commands) == 1:
        return commands[0].command
    return hint or UNKNOWN_SESSION


class TelemetrySession:
    """コマンド実行結果を蓄積し、シャットダウン時にまとめて書き出す。

    Args:
        enabled: テレメトリを有効にするか。False の場合 init() 後も何も記録しない。
        path: 書き込み先 JSONL ファイル。None の場合は default_telemetry_path()。
        perf: セッション所要時間と span ツリーの取得元。
        clock: recorded_at に使う現在時刻の取得関数。
    """

    def __init__(
        self,
        enabled: bool = True,
        path: Path | None = None,
        perf: PerfRecorder | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._lock = threading.Lock()
        self._requested = enabled
        self._path = path
        self._perf = perf
        self._clock = clock
        self._enabled = False
        self._initialized = False
        self._shut_down = False
        self._session_hint = ""
        self._perf_base_dir = ""
        self._commands: list[CommandRecord] = []

    @property
    def enabled(self) -> bool:
        with self._lock:
            return self._enabled

    def init(self) -> None:
        """テレメトリを開始する。2回目以降の呼び出しは無視する。"""
        with self._lock:
            if self._initialized:
                return
            self._initialized = True
            self._enabled = self._requested
            if self._enabled and self._path is None:
                self._path = default_telemetry_path()
        logger.debug("Telemetry %s", "enabled" if self._requested else "disabled")

    def set_session_name_hint(self, name: str) -> None:
        """コマンドが記録されなかった場合のセッション名を設定する。空文字は無視する。"""
        name = name.strip()
        if not name:
            return
        with self._lock:
            self._session_hint = name

    def set_perf_base_dir(self, base_dir: str) -> None:
        """span ツリー内のパス属性を相対化する基準ディレクトリを設定する。"""
        base_dir = base_dir.strip()
        if not base_dir:
            return
        with self._lock:
            self._perf_base_dir = base_dir

    def record_command(self, record: CommandRecord) -> None:
        """コマンド実行結果を記録する。無効時は何もしない。"""
        with self._lock:
            if not self._enabled:
                return
            self._commands.append(record)

    def shutdown(self) -> Path | None:
        """セッションを書き出す。2回目以降の呼び出しは無視する。

        書き込み失敗はログに記録し、呼び出し元には伝播しない。

        Returns:
            書き込んだファイルのパス。無効時・2回目以降・失敗時は None。
        """
        with self._lock:
            if self._shut_down:
                return None
            self._shut_down = True
            if not self._enabled or self._path is None:
                return None
            path = self._path
            commands = tuple(self._commands)
            hint = self._session_hint
            base_dir = self._perf_base_dir

        record = self._build_record(hint, commands, base_dir)
        try:
            return append_session_record(path, record)
        except TelemetryWriteError as exc:
            logger.debug("telemetry: %s", exc)
            return None

    def _build_record(
        self, hint: str, commands: tuple[CommandRecord, ...], base_dir: str
    ) -> SessionRecord:
        snapshots = self._perf.snapshots() if self._perf is not None else []
        duration_ns = session_duration_ns(snapshots)
        performance = tuple(build_export_tree(snapshots, base_dir))
        return SessionRecord(
            session=resolve_session_name(hint, commands),
            recorded_at=self._clock(),
            duration_ms=duration_ns / _NS_PER_MS if duration_ns is not None else None,
            commands=tuple(_with_duration(c, performance) for c in commands),
            performance=performance,
        )


def _with_duration(
    record: CommandRecord, performance: tuple[ExportSpan, ...]
) -> CommandRecord:
    """記録に所要時間がなければ perf span から補う。"""
    if record.duration_ms is not None:
        return record
    duration_ns = command_duration_ns(record.command, performance)
    if duration_ns is None:
        return record
    return record.model_copy(update={"duration_ms": duration_ns / _NS_PER_MS})
