"""Span スナップショットとエクスポート形式の定義。

SpanSnapshot は終了済み span の読み取り専用コピー。
ExportSpan は lifeline-perf.json に書き出す階層構造の1ノード。
"""

from __future__ import annotations

from pydantic import Field

from lifeline.models._base import LifelineBaseModel


class SpanEventSnapshot(LifelineBaseModel):
    """span に記録されたイベントのコピー。

    Attributes:
        name: イベント名。
        timestamp_ns: 発生時刻（エポックからのナノ秒）。
        attributes: イベント属性。
    """

    name: str
    timestamp_ns: int
    attributes: dict[str, object] = Field(default_factory=dict)


class SpanSnapshot(LifelineBaseModel):
    """終了済み span の読み取り専用スナップショット。

    Attributes:
        name: span 名（例: "app.lifecycle.shutdown"）。
        trace_id: 32桁16進のトレース ID。
        span_id: 16桁16進の span ID。
        parent_span_id: 親 span ID。ルート span では None。
        start_time_ns: 開始時刻（エポックからのナノ秒）。
        end_time_ns: 終了時刻（エポックからのナノ秒）。
        attributes: 文字列キーの属性マッピング。
        events: span に記録されたイベント。
        status: ステータスコード（"ok" / "error"）。未設定なら None。
    """

    name: str
    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    start_time_ns: int
    end_time_ns: int
    attributes: dict[str, object] = Field(default_factory=dict)
    events: tuple[SpanEventSnapshot, ...] = ()
    status: str | None = None

    @property
    def duration_ns(self) -> int:
        """span の所要時間（ナノ秒）。"""
        return self.end_time_ns - self.start_time_ns


class ExportSpan(LifelineBaseModel):
    """lifeline-perf.json に出力する span ノード。子 span は children に入れ子になる。"""

    name: str
    trace_id: str
    span_id: str
    parent_span_id: str | None = None
    start_time_ns: int
    end_time_ns: int
    duration_ns: int
    attributes: dict[str, object] | None = None
    events: tuple[SpanEventSnapshot, ...] | None = None
    status: str | None = None
    children: list[ExportSpan] = Field(default_factory=list)
