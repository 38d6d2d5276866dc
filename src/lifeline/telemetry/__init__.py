"""利用状況テレメトリ。

コマンド実行結果をセッション単位で蓄積し、シャットダウン時に JSONL へ書き出す。
"""

from lifeline.telemetry._session import (
    MULTI_COMMAND_SESSION,
    TelemetrySession,
    error_category,
    resolve_session_name,
)
from lifeline.telemetry._writer import (
    TELEMETRY_FILE_ENV,
    TelemetryWriteError,
    append_session_record,
    default_telemetry_path,
)

__all__ = [
    "MULTI_COMMAND_SESSION",
    "TELEMETRY_FILE_ENV",
    "TelemetrySession",
    "TelemetryWriteError",
    "append_session_record",
    "default_telemetry_path",
    "error_category",
    "resolve_session_name",
]
