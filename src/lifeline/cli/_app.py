"""CliApp: Typer アプリケーション定義。

main() がライフサイクル管理・perf 記録・テレメトリを構築し、
Typer アプリケーションの実行を run_with_deps() の execute として包む。
グローバルオプション（--perf 等）は Typer の解析前に生の引数から読み取られる。
"""

from __future__ import annotations

import importlib.metadata
import os
import subprocess
import sys
import tomllib
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import click
import typer
from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import Span
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from lifeline._logging import configure_logging
from lifeline.config import resolve_config
from lifeline.engine import PerfExportConfig, RunDeps, run_with_deps
from lifeline.lifecycle import LifecycleManager
from lifeline.models.config import LifelineConfig
from lifeline.models.exit_code import ExitCode, ExitCodeError
from lifeline.models.span import ExportSpan
from lifeline.models.telemetry import CommandRecord
from lifeline.perf import (
    EXPORT_FILENAME,
    PerfExportError,
    PerfRecorder,
    command_span_name,
    load_export_file,
)
from lifeline.telemetry import TelemetrySession, error_category

PROG_NAME = "lifeline"

_NS_PER_MS = 1_000_000.0

_SIGNAL_EXIT_BASE = 128


@dataclass
class CliState:
    """コマンド間で共有する実行時状態。ctx.obj に格納される。"""

    config: LifelineConfig = field(default_factory=LifelineConfig)
    telemetry: TelemetrySession | None = None
    perf: PerfRecorder | None = None
    parent_span: Span | None = None

    def record(self, record: CommandRecord) -> None:
        if self.telemetry is not None:
            self.telemetry.record_command(record)

    @contextmanager
    def command_span(self, command: str) -> Iterator[Span]:
        """app.command.<command> span を開始し、ブロック終了時に終了する。"""
        if self.perf is None:
            yield trace.INVALID_SPAN
            return
        span = self.perf.start_span(command_span_name(command), parent=self.parent_span)
        try:
            yield span
        finally:
            span.end()


app = typer.Typer(
    name=PROG_NAME,
    help="Run commands under a managed process lifecycle.",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    """--version 指定時にバージョン番号を出力して終了する。"""
    if value:
        print(importlib.metadata.version(PROG_NAME))
        raise typer.Exit()


def _state(ctx: typer.Context) -> CliState:
    if isinstance(ctx.obj, CliState):
        return ctx.obj
    ctx.obj = CliState()
    return ctx.obj


@app.callback()
def lifeline_callback(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
    perf: Annotated[
        bool, typer.Option("--perf", help="Write lifeline-perf.json on exit.")
    ] = False,
    perf_out_dir: Annotated[
        str | None,
        typer.Option(
            "--perf-out-dir",
            help="Directory for lifeline-perf.json (defaults to the config file directory).",
        ),
    ] = None,
    debug: Annotated[
        bool, typer.Option("--debug", "-d", help="Enable debug logging.")
    ] = False,
    config: Annotated[
        str | None,
        typer.Option("--config", "-c", help="Path to lifeline.toml."),
    ] = None,
) -> None:
    """Run commands under a managed process lifecycle.

    SIGINT and SIGTERM trigger registered shutdown handlers before exit.
    """
    # グローバルオプションは main() で解析済み。ここでは受理のみ行う
    _state(ctx)


@app.command(
    "run",
    context_settings={"ignore_unknown_options": True},
)
def run_command(
    ctx: typer.Context,
    command: Annotated[
        list[str],
        typer.Argument(help="Command to run, e.g. `lifeline run -- make test`."),
    ],
) -> None:
    """Run a child command and propagate its exit code."""
    state = _state(ctx)
    program = command[0]
    arguments: dict[str, object] = {"program": program, "argc": len(command)}

    with state.command_span("run") as span:
        try:
            completed = subprocess.run(command, check=False)
        except OSError as e:
            state.record(
                CommandRecord(
                    command="run",
                    success=False,
                    exit_code=int(ExitCode.FAILURE),
                    error_message=str(e),
                    error_category=error_category(e),
                    arguments=arguments,
                )
            )
            print(
                f"Error: Cannot run '{program}': {e}\n"
                "Check that the command exists and is executable.",
                file=sys.stderr,
            )
            raise typer.Exit(code=ExitCode.FAILURE) from None

        code = completed.returncode
        if code < 0:
            # 子プロセスがシグナルで終了した場合は -N
            code = _SIGNAL_EXIT_BASE - code
        span.set_attribute("exit_code", code)

    if code == 0:
        state.record(CommandRecord(command="run", success=True, arguments=arguments))
        return

    error = ExitCodeError(code, f"{program} exited with code {code}")
    state.record(
        CommandRecord(
            command="run",
            success=False,
            exit_code=code,
            error_message=error.message,
            error_category=error_category(error),
            arguments=arguments,
        )
    )
    raise error


@app.command("perf")
def perf_command(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Perf export file to display."),
    ] = Path(EXPORT_FILENAME),
) -> None:
    """Display an exported lifeline-perf.json as a tree."""
    state = _state(ctx)
    with state.command_span("perf"):
        try:
            spans = load_export_file(path)
        except PerfExportError as e:
            state.record(
                CommandRecord(
                    command="perf",
                    success=False,
                    exit_code=int(ExitCode.FAILURE),
                    error_message=str(e),
                    error_category=error_category(e),
                )
            )
            print(
                f"Error: {e}\n"
                "Run a command with --perf to generate lifeline-perf.json.",
                file=sys.stderr,
            )
            raise typer.Exit(code=ExitCode.FAILURE) from None

        tree = Tree(f"[bold]{escape(str(path))}[/bold]")
        for span in spans:
            _add_span(tree, span)
        Console().print(tree)
    state.record(
        CommandRecord(command="perf", success=True, arguments={"spans": len(spans)})
    )


def _span_label(span: ExportSpan) -> str:
    label = f"[bold]{escape(span.name)}[/bold] {span.duration_ns / _NS_PER_MS:.2f} ms"
    if span.attributes:
        attrs = " ".join(f"{key}={value}" for key, value in span.attributes.items())
        label += f" [dim]{escape(attrs)}[/dim]"
    if span.status == "error":
        label += " [red]error[/red]"
    return label


def _add_span(parent: Tree, span: ExportSpan) -> None:
    branch = parent.add(_span_label(span))
    for child in span.children:
        _add_span(branch, child)


def _resolve_config(prescan: PerfExportConfig) -> LifelineConfig:
    """事前走査結果を CLI 上書きとして設定を解決する。失敗時は終了コード 1 で終了する。"""
    overrides: dict[str, object] = {
        "perf": True if prescan.enabled else None,
        "debug": True if prescan.debug else None,
        "perf_out_dir": prescan.perf_out_dir or None,
    }
    config_path = Path(prescan.config_path) if prescan.config_explicit else None
    try:
        return resolve_config(config_path=config_path, cli_overrides=overrides)
    except (ValidationError, tomllib.TOMLDecodeError, TypeError) as e:
        print(
            f"Error: Invalid configuration: {e}\n"
            "Check lifeline.toml for syntax errors or invalid values.",
            file=sys.stderr,
        )
        sys.exit(ExitCode.FAILURE)
    except PermissionError as e:
        print(
            f"Error: Cannot read configuration file: {e}\n"
            "Check file permissions for lifeline.toml.",
            file=sys.stderr,
        )
        sys.exit(ExitCode.FAILURE)


def _invoke_app(args: list[str], state: CliState) -> None:
    """Typer アプリケーションを実行する。非ゼロ終了は ExitCodeError に変換する。"""
    try:
        result = app(
            args=args, prog_name=PROG_NAME, standalone_mode=False, obj=state
        )
    except click.ClickException as e:
        e.show()
        raise ExitCodeError(e.exit_code, e.format_message()) from None
    except click.Abort:
        print("Aborted!", file=sys.stderr)
        raise ExitCodeError(ExitCode.FAILURE, "aborted") from None

    if isinstance(result, int) and result != ExitCode.SUCCESS:
        raise ExitCodeError(result)


def main(argv: Sequence[str] | None = None) -> None:
    """CLI エントリポイント。pyproject.toml の [project.scripts] から呼び出される。

    Args:
        argv: プログラム名を除いた引数。None の場合は sys.argv[1:]。
    """
    args = list(sys.argv[1:] if argv is None else argv)
    prescan = PerfExportConfig.from_args(args, os.getcwd())
    configure_logging(debug=prescan.debug)

    config = _resolve_config(prescan)
    configure_logging(debug=config.debug, level=config.effective_log_level)

    perf = PerfRecorder()
    telemetry = TelemetrySession(enabled=config.telemetry, perf=perf)
    state = CliState(config=config, telemetry=telemetry, perf=perf)

    def execute(ctx: Context) -> None:
        state.parent_span = trace.get_current_span(ctx)
        _invoke_app(args, state)

    with LifecycleManager() as manager:
        code = run_with_deps(
            RunDeps(
                execute=execute,
                telemetry_init=telemetry.init,
                telemetry_shutdown=telemetry.shutdown,
                register=manager.register,
                unregister=manager.unregister,
                args=args,
                perf=perf,
                set_session_hint=telemetry.set_session_name_hint,
                set_perf_base_dir=telemetry.set_perf_base_dir,
                config=config,
            )
        )

    if code != ExitCode.SUCCESS:
        sys.exit(code)
