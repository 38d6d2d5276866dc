"""ShutdownDispatcher: 登録ハンドラの逆順実行。

後に登録されたハンドラから先に実行する（後に確保したリソースを先に解放する）。
各ハンドラの失敗は HandlerOutcome として記録して破棄し、残りのハンドラの実行を続ける。
"""

from __future__ import annotations

import logging
import signal
from collections.abc import Sequence
from dataclasses import dataclass

from lifeline.lifecycle._registry import Handler, HandlerID

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HandlerOutcome:
    """ハンドラ1件の実行結果。

    Attributes:
        handler_id: 実行したハンドラの ID。
        error: ハンドラが送出した例外。SystemExit 等も含む。正常終了なら None。
    """

    handler_id: HandlerID
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _call_handler(
    handler_id: HandlerID, handler: Handler, sig: signal.Signals
) -> HandlerOutcome:
    try:
        handler(sig)
    except BaseException as exc:
        return HandlerOutcome(handler_id=handler_id, error=exc)
    return HandlerOutcome(handler_id=handler_id)


def dispatch_handlers(
    entries: Sequence[tuple[HandlerID, Handler]],
    sig: signal.Signals,
) -> list[HandlerOutcome]:
    """スナップショット済みのハンドラを登録の逆順で実行する。

    ハンドラの失敗は呼び出し元に伝播しない。失敗は WARNING でログ出力した上で
    破棄し、次のハンドラに進む。

    Args:
        entries: HandlerRegistry.snapshot() の戻り値（登録順）。
        sig: シャットダウンを引き起こしたシグナル。

    Returns:
        実行順の HandlerOutcome リスト。
    """
    outcomes: list[HandlerOutcome] = []
    for handler_id, handler in reversed(entries):
        outcome = _call_handler(handler_id, handler, sig)
        if not outcome.ok:
            logger.warning(
                "Shutdown handler %d failed on %s",
                handler_id,
                sig.name,
                exc_info=outcome.error,
            )
        outcomes.append(outcome)
    return outcomes
