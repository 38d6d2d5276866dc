"""実行エンジン。

プロセスの起動・実行・終了を span で囲み、シグナル受信時にも
終了シーケンスを高々1回だけ実行する。
"""

from lifeline.engine._args import (
    DEFAULT_CONFIG_PATH,
    INTERACTIVE_SESSION,
    PerfExportConfig,
    first_command,
    session_name_hint,
)
from lifeline.engine._orchestrator import (
    EXECUTE_SPAN_NAME,
    SHUTDOWN_SPAN_NAME,
    STARTUP_SPAN_NAME,
    Orchestrator,
    RunDeps,
    RunPhase,
    ShutdownTrigger,
    exit_code_from,
    run_with_deps,
    signal_display_name,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "EXECUTE_SPAN_NAME",
    "INTERACTIVE_SESSION",
    "Orchestrator",
    "PerfExportConfig",
    "RunDeps",
    "RunPhase",
    "SHUTDOWN_SPAN_NAME",
    "STARTUP_SPAN_NAME",
    "ShutdownTrigger",
    "exit_code_from",
    "first_command",
    "run_with_deps",
    "session_name_hint",
    "signal_display_name",
]
