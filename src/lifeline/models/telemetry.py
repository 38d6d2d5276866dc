"""テレメトリレコードの定義。

CommandRecord はコマンド単位の実行結果、SessionRecord はプロセス1回分の
セッションとして telemetry.jsonl に1行で書き出される。
"""

from __future__ import annotations

from datetime import datetime

from pydantic import Field

from lifeline.models._base import LifelineBaseModel
from lifeline.models.span import ExportSpan


class CommandRecord(LifelineBaseModel):
    """コマンド実行1回分の記録。

    Attributes:
        command: コマンド名（空文字不可）。
        success: 正常終了したか。
        exit_code: プロセス終了コード。
        error_message: 失敗時のエラーメッセージ。
        error_category: 失敗の分類（"canceled", "command_not_found" 等）。
        duration_ms: app.command.<command> span から求めた所要時間。
        arguments: 記録対象の引数。
    """

    command: str = Field(min_length=1)
    success: bool
    exit_code: int = 0
    error_message: str | None = None
    error_category: str | None = None
    duration_ms: float | None = Field(default=None, ge=0)
    arguments: dict[str, object] = Field(default_factory=dict)


class SessionRecord(LifelineBaseModel):
    """プロセス1回分のテレメトリセッション。

    Attributes:
        session: セッション名。単一コマンドならそのコマンド名。
        recorded_at: 書き出し日時（UTC）。
        duration_ms: app.lifecycle span から求めたセッション所要時間。
        commands: 記録されたコマンド。
        performance: セッション中の perf span ツリー。
    """

    session: str = Field(min_length=1)
    recorded_at: datetime
    duration_ms: float | None = Field(default=None, ge=0)
    commands: tuple[CommandRecord, ...] = ()
    performance: tuple[ExportSpan, ...] = ()
