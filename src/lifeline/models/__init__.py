"""lifeline ドメインモデル。"""

from lifeline.models._base import LifelineBaseModel
from lifeline.models.config import LifelineConfig, LogLevel
from lifeline.models.exit_code import ExitCode, ExitCodeError, exit_code_for
from lifeline.models.span import ExportSpan, SpanEventSnapshot, SpanSnapshot
from lifeline.models.telemetry import CommandRecord, SessionRecord

__all__ = [
    "CommandRecord",
    "ExitCode",
    "ExitCodeError",
    "ExportSpan",
    "LifelineBaseModel",
    "LifelineConfig",
    "LogLevel",
    "SessionRecord",
    "SpanEventSnapshot",
    "SpanSnapshot",
    "exit_code_for",
]
