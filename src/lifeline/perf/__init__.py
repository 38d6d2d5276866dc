"""perf 計測。

OpenTelemetry SDK でプロセス内の span を記録し、スナップショットの取得と
lifeline-perf.json へのエクスポートを提供する。
"""

from lifeline.perf._export import (
    COMMAND_SPAN_PREFIX,
    EXPORT_FILENAME,
    LIFECYCLE_SPAN_NAME,
    PerfExportError,
    build_export_tree,
    command_duration_ns,
    command_span_name,
    export_to_file,
    load_export_file,
    normalize_attributes,
    session_duration_ns,
)
from lifeline.perf._recorder import PerfRecorder, snapshot_span

__all__ = [
    "COMMAND_SPAN_PREFIX",
    "EXPORT_FILENAME",
    "LIFECYCLE_SPAN_NAME",
    "PerfExportError",
    "PerfRecorder",
    "build_export_tree",
    "command_duration_ns",
    "command_span_name",
    "export_to_file",
    "load_export_file",
    "normalize_attributes",
    "session_duration_ns",
    "snapshot_span",
]
