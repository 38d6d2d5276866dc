"""設定管理モデル。

設定項目の定義とバリデーション仕様。LifelineBaseModel を継承し不変。
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field, StrictBool, field_validator

from lifeline.models._base import LifelineBaseModel


class LogLevel(StrEnum):
    """stderr ログ出力レベル。"""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LifelineConfig(LifelineBaseModel):
    """全設定項目を統合した不変モデル。

    デフォルト値のみで有効なインスタンスを構築可能。
    """

    # perf 出力設定
    perf: StrictBool = False
    perf_out_dir: str | None = Field(default=None, min_length=1)

    # 診断出力
    debug: StrictBool = False
    log_level: LogLevel = LogLevel.WARNING

    # 利用状況テレメトリ
    telemetry: StrictBool = True

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """大文字小文字を区別せずにログレベルを受け付ける。"""
        if isinstance(v, str):
            return v.lower()
        return v

    @property
    def effective_log_level(self) -> LogLevel:
        """debug=true の場合は log_level に関わらず DEBUG を返す。"""
        return LogLevel.DEBUG if self.debug else self.log_level
