"""PerfRecorder のテスト。"""

from __future__ import annotations

from opentelemetry import trace

from lifeline.perf import PerfRecorder


class TestPerfRecorderEnabled:
    def test_finished_span_snapshot(self) -> None:
        recorder = PerfRecorder()
        span = recorder.start_span("work", attributes={"path": "/tmp/x", "n": 3})
        span.end()

        [snap] = recorder.snapshots()
        assert snap.name == "work"
        assert snap.parent_span_id is None
        assert snap.attributes == {"path": "/tmp/x", "n": 3}
        assert snap.end_time_ns >= snap.start_time_ns > 0
        assert len(snap.trace_id) == 32
        assert len(snap.span_id) == 16

    def test_unfinished_span_not_in_snapshots(self) -> None:
        recorder = PerfRecorder()
        recorder.start_span("open")
        assert recorder.snapshots() == []

    def test_child_span_has_parent(self) -> None:
        recorder = PerfRecorder()
        root = recorder.start_span("root")
        child = recorder.start_span("child", parent=root)
        child.end()
        root.end()

        [child_snap] = recorder.spans_named("child")
        [root_snap] = recorder.spans_named("root")
        assert child_snap.parent_span_id == root_snap.span_id
        assert child_snap.trace_id == root_snap.trace_id

    def test_root_spans_are_independent_traces(self) -> None:
        """parent を指定しない span は現在のコンテキストに関係なくルートになる。"""
        recorder = PerfRecorder()
        outer = recorder.start_span("outer")
        with trace.use_span(outer):
            inner = recorder.start_span("inner")
        inner.end()
        outer.end()
        [inner_snap] = recorder.spans_named("inner")
        assert inner_snap.parent_span_id is None

    def test_sequence_attribute_becomes_list(self) -> None:
        recorder = PerfRecorder()
        recorder.start_span("s", attributes={"tags": ("a", "b")}).end()
        assert recorder.snapshots()[0].attributes == {"tags": ["a", "b"]}

    def test_clear(self) -> None:
        recorder = PerfRecorder()
        recorder.start_span("s").end()
        recorder.clear()
        assert recorder.snapshots() == []


class TestPerfRecorderShutdown:
    def test_snapshots_kept_after_shutdown(self) -> None:
        recorder = PerfRecorder()
        recorder.start_span("before").end()
        recorder.shutdown()
        assert [s.name for s in recorder.snapshots()] == ["before"]

    def test_spans_after_shutdown_not_recorded(self) -> None:
        recorder = PerfRecorder()
        recorder.shutdown()
        span = recorder.start_span("after")
        span.end()
        assert not span.is_recording()
        assert recorder.spans_named("after") == []

    def test_shutdown_twice(self) -> None:
        recorder = PerfRecorder()
        recorder.shutdown()
        recorder.shutdown()


class TestPerfRecorderDisabled:
    def test_disabled_returns_non_recording_span(self) -> None:
        recorder = PerfRecorder(enabled=False)
        span = recorder.start_span("x")
        span.end()
        assert recorder.enabled is False
        assert not span.is_recording()
        assert recorder.snapshots() == []
