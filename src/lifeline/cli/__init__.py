"""lifeline CLI パッケージ。

公開 API:
    app: Typer アプリケーションインスタンス。
    main: CLI エントリポイント。pyproject.toml から参照される。
"""

from lifeline.cli._app import CliState, app, main

__all__ = ["CliState", "app", "main"]
