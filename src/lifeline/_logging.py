"""ログ出力の設定。

lifeline パッケージのロガーに stderr 向けの RichHandler を1つだけ取り付ける。
"""

from __future__ import annotations

import logging
from typing import Final

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER: Final[str] = "lifeline"


def configure_logging(debug: bool = False, level: str | None = None) -> logging.Logger:
    """パッケージロガーを設定する。

    既存のハンドラは置き換える。debug=True の場合は level より優先して DEBUG にする。

    Args:
        debug: デバッグ出力を有効にするか。
        level: ログレベル名。None の場合は WARNING。

    Returns:
        設定済みのパッケージロガー。
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=debug,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(
        logging.DEBUG if debug else logging.getLevelName((level or "WARNING").upper())
    )
    return logger
