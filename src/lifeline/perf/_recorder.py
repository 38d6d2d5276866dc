"""PerfRecorder: OpenTelemetry SDK によるプロセス内 span 記録。

TracerProvider と InMemorySpanExporter をインスタンス単位で保持する。
グローバル TracerProvider は変更しない。
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from typing import Final

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
    InMemorySpanExporter,
)
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import Span, StatusCode
from opentelemetry.util.types import AttributeValue

from lifeline.models.span import SpanEventSnapshot, SpanSnapshot

logger = logging.getLogger(__name__)

TRACER_NAME: Final[str] = "lifeline.perf"

_STATUS_NAMES: Final[dict[StatusCode, str]] = {
    StatusCode.OK: "ok",
    StatusCode.ERROR: "error",
}


def _attributes_to_dict(attributes: Mapping[str, object] | None) -> dict[str, object]:
    """OpenTelemetry 属性をプレーンな辞書に変換する。シーケンス値は list にする。"""
    if not attributes:
        return {}
    return {
        key: list(value) if isinstance(value, tuple) else value
        for key, value in attributes.items()
    }


def snapshot_span(span: ReadableSpan) -> SpanSnapshot:
    """終了済み span を SpanSnapshot に変換する。"""
    context = span.context
    parent = span.parent
    return SpanSnapshot(
        name=span.name,
        trace_id=trace.format_trace_id(context.trace_id) if context else "",
        span_id=trace.format_span_id(context.span_id) if context else "",
        parent_span_id=(
            trace.format_span_id(parent.span_id)
            if parent is not None and parent.is_valid
            else None
        ),
        start_time_ns=span.start_time or 0,
        end_time_ns=span.end_time or 0,
        attributes=_attributes_to_dict(span.attributes),
        events=tuple(
            SpanEventSnapshot(
                name=event.name,
                timestamp_ns=event.timestamp,
                attributes=_attributes_to_dict(event.attributes),
            )
            for event in span.events
        ),
        status=_STATUS_NAMES.get(span.status.status_code),
    )


class PerfRecorder:
    """プロセス内の span を記録し、終了済み span のスナップショットを提供する。

    enabled=False の場合は記録しない span を返し、スナップショットは常に空になる。
    """

    def __init__(self, enabled: bool = True) -> None:
        self._lock = threading.Lock()
        self._enabled = enabled
        self._exporter: InMemorySpanExporter | None = None
        self._provider: TracerProvider | None = None
        if enabled:
            self._exporter = InMemorySpanExporter()
            self._provider = TracerProvider(sampler=ALWAYS_ON)
            self._provider.add_span_processor(SimpleSpanProcessor(self._exporter))

    @property
    def enabled(self) -> bool:
        return self._enabled

    def start_span(
        self,
        name: str,
        parent: Span | None = None,
        attributes: Mapping[str, AttributeValue] | None = None,
    ) -> Span:
        """span を開始する。終了は呼び出し側が span.end() で行う。

        Args:
            name: span 名。
            parent: 親 span。None の場合はルート span として開始する。
            attributes: 開始時に設定する属性。

        Returns:
            開始した span。記録無効時は非記録 span。
        """
        with self._lock:
            provider = self._provider
        if provider is None:
            return trace.INVALID_SPAN

        context = trace.set_span_in_context(parent) if parent is not None else Context()
        tracer = provider.get_tracer(TRACER_NAME)
        return tracer.start_span(name, context=context, attributes=attributes)

    def context_for(self, span: Span) -> Context:
        """span を現在の span とするコンテキストを返す。"""
        return trace.set_span_in_context(span)

    def snapshots(self) -> list[SpanSnapshot]:
        """終了済み span のスナップショットを終了順に返す。"""
        with self._lock:
            exporter = self._exporter
        if exporter is None:
            return []
        return [snapshot_span(span) for span in exporter.get_finished_spans()]

    def spans_named(self, name: str) -> list[SpanSnapshot]:
        """指定名の終了済み span のスナップショットを返す。"""
        return [s for s in self.snapshots() if s.name == name]

    def clear(self) -> None:
        """記録済み span を破棄する。"""
        with self._lock:
            exporter = self._exporter
        if exporter is not None:
            exporter.clear()

    def shutdown(self) -> None:
        """TracerProvider を停止する。以降の span は記録されない。

        記録済みのスナップショットは引き続き参照できる。
        """
        with self._lock:
            provider = self._provider
            self._provider = None
        if provider is not None:
            provider.shutdown()
            logger.debug("Perf recorder shut down")
