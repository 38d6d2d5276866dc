"""perf span の階層化と lifeline-perf.json への書き出し。

パスらしき属性値は base_dir からの相対パス（スラッシュ区切り）に書き換え、
出力をマシン間で比較可能にする。
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from pathlib import Path, PurePath
from typing import Final

from pydantic import TypeAdapter, ValidationError

from lifeline.models.span import ExportSpan, SpanEventSnapshot, SpanSnapshot
from lifeline.perf._recorder import PerfRecorder

EXPORT_FILENAME: Final[str] = "lifeline-perf.json"
"""perf エクスポートファイル名。"""

LIFECYCLE_SPAN_NAME: Final[str] = "app.lifecycle"
"""プロセス全体を覆うルート span 名。"""

COMMAND_SPAN_PREFIX: Final[str] = "app.command."
"""コマンド実行を覆う span 名の接頭辞。"""

_CONFIG_PATH_KEY: Final[str] = "config_path"

_EXPORT_ADAPTER: Final[TypeAdapter[list[ExportSpan]]] = TypeAdapter(list[ExportSpan])


class PerfExportError(Exception):
    """perf エクスポートエラー。ディレクトリ作成失敗、I/O エラー等。"""


def _looks_like_path_key(key: str) -> bool:
    key = key.strip().lower()
    return key == "path" or key.endswith("path")


def _export_path(value: str) -> str:
    cleaned = os.path.normpath(value)
    if cleaned == ".":
        return cleaned
    return PurePath(cleaned).as_posix()


def _normalize_value(key: str, value: object, base_dir: str) -> object:
    if not isinstance(value, str):
        return value
    if key != _CONFIG_PATH_KEY and not _looks_like_path_key(key):
        return value
    if base_dir and os.path.isabs(value):
        try:
            return _export_path(os.path.relpath(value, base_dir))
        except ValueError:
            # Windows で別ドライブの場合
            return _export_path(value)
    return _export_path(value)


def normalize_attributes(
    attributes: dict[str, object], base_dir: str
) -> dict[str, object] | None:
    """パス属性を base_dir 相対に書き換える。空なら None を返す。"""
    if not attributes:
        return None
    return {key: _normalize_value(key, value, base_dir) for key, value in attributes.items()}


def _export_events(
    events: Sequence[SpanEventSnapshot], base_dir: str
) -> tuple[SpanEventSnapshot, ...] | None:
    if not events:
        return None
    return tuple(
        event.model_copy(
            update={"attributes": normalize_attributes(event.attributes, base_dir) or {}}
        )
        for event in events
    )


def _sort_key(span: ExportSpan) -> tuple[int, str, str]:
    return (span.start_time_ns, span.name, span.span_id)


def _sorted_tree(spans: list[ExportSpan]) -> list[ExportSpan]:
    return sorted(
        (
            span.model_copy(update={"children": _sorted_tree(span.children)})
            for span in spans
        ),
        key=_sort_key,
    )


def build_export_tree(
    snapshots: Sequence[SpanSnapshot], base_dir: str = ""
) -> list[ExportSpan]:
    """span スナップショットを親子関係で入れ子にしたツリーに変換する。

    親 span が見つからない span はルートとして扱う。各階層は開始時刻、
    名前、span ID の順にソートされる。

    Args:
        snapshots: 終了済み span のスナップショット。
        base_dir: パス属性を相対化する基準ディレクトリ。

    Returns:
        ルート span のリスト。子 span は children に格納される。
    """
    children: dict[tuple[str, str], list[SpanSnapshot]] = {}
    known = {(s.trace_id, s.span_id) for s in snapshots}
    roots: list[SpanSnapshot] = []
    for snap in snapshots:
        parent_key = (snap.trace_id, snap.parent_span_id or "")
        if snap.parent_span_id is None or parent_key not in known:
            roots.append(snap)
        else:
            children.setdefault(parent_key, []).append(snap)

    def _build(snap: SpanSnapshot) -> ExportSpan:
        return ExportSpan(
            name=snap.name,
            trace_id=snap.trace_id,
            span_id=snap.span_id,
            parent_span_id=snap.parent_span_id,
            start_time_ns=snap.start_time_ns,
            end_time_ns=snap.end_time_ns,
            duration_ns=snap.duration_ns,
            attributes=normalize_attributes(snap.attributes, base_dir),
            events=_export_events(snap.events, base_dir),
            status=snap.status,
            children=[
                _build(child)
                for child in children.get((snap.trace_id, snap.span_id), [])
            ],
        )

    return _sorted_tree([_build(root) for root in roots])


def export_to_file(recorder: PerfRecorder, out_dir: Path, base_dir: str = "") -> Path:
    """記録済み span をツリー化して out_dir/lifeline-perf.json に書き出す。

    Args:
        recorder: span を記録した PerfRecorder。
        out_dir: 出力先ディレクトリ。存在しなければ作成する。
        base_dir: パス属性を相対化する基準ディレクトリ。

    Returns:
        書き出したファイルのパス。

    Raises:
        PerfExportError: perf 記録が無効、またはディレクトリ作成・書き込みに失敗した場合。
    """
    if not recorder.enabled:
        raise PerfExportError("perf recording is disabled")

    tree = build_export_tree(recorder.snapshots(), base_dir)
    payload = _EXPORT_ADAPTER.dump_json(tree, indent=2, exclude_none=True)

    path = out_dir / EXPORT_FILENAME
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        path.write_bytes(payload)
    except OSError as exc:
        raise PerfExportError(
            f"Failed to write perf export to {path}: {exc}\n"
            "Check directory permissions or choose another --perf-out-dir."
        ) from exc
    return path


def session_duration_ns(snapshots: Sequence[SpanSnapshot]) -> int | None:
    """セッション全体の所要時間（ナノ秒）を求める。

    最後に終了した app.lifecycle span を優先し、なければ全 span の
    最小開始時刻から最大終了時刻までを使う。

    Returns:
        所要時間。有効な span がなければ None。
    """
    valid = [
        s
        for s in snapshots
        if s.start_time_ns > 0 and s.end_time_ns >= s.start_time_ns
    ]
    lifecycle = [s for s in valid if s.name == LIFECYCLE_SPAN_NAME]
    if lifecycle:
        latest = max(lifecycle, key=lambda s: s.end_time_ns)
        return latest.duration_ns
    if not valid:
        return None
    return max(s.end_time_ns for s in valid) - min(s.start_time_ns for s in valid)


def load_export_file(path: Path) -> list[ExportSpan]:
    """lifeline-perf.json を読み込み、ルート span のリストを返す。

    Raises:
        PerfExportError: ファイルが読めない、または内容が不正な場合。
    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise PerfExportError(f"Cannot read perf export {path}: {exc}") from exc
    try:
        return _EXPORT_ADAPTER.validate_json(raw)
    except ValidationError as exc:
        raise PerfExportError(f"Invalid perf export {path}: {exc}") from exc


def command_span_name(command: str) -> str:
    """コマンド名から span 名（app.command.<command>）を作る。"""
    return COMMAND_SPAN_PREFIX + command


def command_duration_ns(command: str, performance: Sequence[ExportSpan]) -> int | None:
    """span ツリーからコマンドの所要時間（ナノ秒）を求める。

    同名の span が複数あれば最後に終了したものを使う。
    見つからなければ None。
    """
    if not command or not performance:
        return None
    target = command_span_name(command)
    best: ExportSpan | None = None
    pending = list(performance)
    while pending:
        span = pending.pop()
        if span.name == target and (best is None or span.end_time_ns > best.end_time_ns):
            best = span
        pending.extend(span.children)
    return best.duration_ns if best is not None else None
