"""TelemetryWriter: セッションレコードの JSONL 追記。

SessionRecord を1行の JSON オブジェクトとしてテレメトリファイルに追記する。
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final

from lifeline.models.telemetry import SessionRecord

TELEMETRY_FILE_ENV: Final[str] = "LIFELINE_TELEMETRY_FILE"
"""テレメトリファイルの出力先を上書きする環境変数。"""

_DEFAULT_TELEMETRY_FILENAME: Final[str] = "telemetry.jsonl"


class TelemetryWriteError(Exception):
    """JSONL 書き込みエラー。ディレクトリ作成失敗、I/O エラー等。"""


def default_telemetry_path(environ: Mapping[str, str] | None = None) -> Path:
    """テレメトリファイルのパスを解決する。

    LIFELINE_TELEMETRY_FILE が設定されていればそのパス、
    なければ ~/.local/state/lifeline/telemetry.jsonl を返す。
    """
    env = os.environ if environ is None else environ
    override = env.get(TELEMETRY_FILE_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    return Path.home() / ".local" / "state" / "lifeline" / _DEFAULT_TELEMETRY_FILENAME


def append_session_record(path: Path, record: SessionRecord) -> Path:
    """SessionRecord を JSONL ファイルに追記する。

    Args:
        path: 書き込み先 JSONL ファイルのパス。親ディレクトリは必要に応じて作成する。
        record: 書き込むセッションレコード。

    Returns:
        書き込み先 JSONL ファイルのパス。

    Raises:
        TelemetryWriteError: ディレクトリ作成失敗、I/O エラー時。
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise TelemetryWriteError(
            f"Failed to create telemetry directory: {path.parent}: {exc}\n"
            f"Set {TELEMETRY_FILE_ENV} to a writable location."
        ) from exc

    try:
        with path.open("a", encoding="utf-8") as f:
            f.write(record.model_dump_json(exclude_none=True))
            f.write("\n")
    except OSError as exc:
        raise TelemetryWriteError(
            f"Failed to write telemetry to {path}: {exc}\n"
            "Check file permissions and available disk space."
        ) from exc

    return path
