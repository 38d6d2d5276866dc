"""dispatch_handlers のテスト。

後に登録されたハンドラから先に実行され、失敗は残りの実行を止めない。
"""

from __future__ import annotations

import logging
import signal
import sys

import pytest

from lifeline.lifecycle._dispatcher import HandlerOutcome, dispatch_handlers
from lifeline.lifecycle._registry import HandlerID, HandlerRegistry


def _recorder(calls: list[str], name: str):
    def handler(sig: signal.Signals) -> None:
        calls.append(name)

    return handler


class TestDispatchOrder:
    def test_reverse_registration_order(self) -> None:
        """A, B, C の順に登録 → C, B, A の順に実行。"""
        registry = HandlerRegistry()
        calls: list[str] = []
        for name in ("A", "B", "C"):
            registry.register(_recorder(calls, name))

        dispatch_handlers(registry.snapshot(), signal.SIGTERM)

        assert calls == ["C", "B", "A"]

    def test_receives_signal(self) -> None:
        received: list[signal.Signals] = []
        registry = HandlerRegistry()
        registry.register(received.append)
        dispatch_handlers(registry.snapshot(), signal.SIGINT)
        assert received == [signal.SIGINT]

    def test_unregistered_handler_not_called(self) -> None:
        registry = HandlerRegistry()
        calls: list[str] = []
        registry.register(_recorder(calls, "A"))
        b = registry.register(_recorder(calls, "B"))
        registry.unregister(b)
        dispatch_handlers(registry.snapshot(), signal.SIGTERM)
        assert calls == ["A"]

    def test_empty_entries(self) -> None:
        assert dispatch_handlers([], signal.SIGTERM) == []


class TestDispatchFailureContainment:
    def test_failure_does_not_stop_remaining(self) -> None:
        """途中のハンドラが失敗しても、より前に登録されたハンドラは実行される。"""
        registry = HandlerRegistry()
        calls: list[str] = []

        def failing(sig: signal.Signals) -> None:
            calls.append("B")
            raise RuntimeError("boom")

        registry.register(_recorder(calls, "A"))
        registry.register(failing)
        registry.register(_recorder(calls, "C"))

        outcomes = dispatch_handlers(registry.snapshot(), signal.SIGTERM)

        assert calls == ["C", "B", "A"]
        assert [o.ok for o in outcomes] == [True, False, True]
        assert isinstance(outcomes[1].error, RuntimeError)

    def test_failure_logged_as_warning(self, caplog: pytest.LogCaptureFixture) -> None:
        def failing(sig: signal.Signals) -> None:
            raise ValueError("bad")

        with caplog.at_level(logging.WARNING, logger="lifeline.lifecycle"):
            dispatch_handlers([(HandlerID(7), failing)], signal.SIGTERM)

        assert "Shutdown handler 7 failed on SIGTERM" in caplog.text

    def test_system_exit_contained(self) -> None:
        """sys.exit() したハンドラがあっても、より前に登録されたハンドラは実行される。"""
        registry = HandlerRegistry()
        calls: list[str] = []

        def exiting(sig: signal.Signals) -> None:
            sys.exit(2)

        registry.register(_recorder(calls, "A"))
        registry.register(exiting)

        outcomes = dispatch_handlers(registry.snapshot(), signal.SIGTERM)

        assert calls == ["A"]
        assert isinstance(outcomes[0].error, SystemExit)
        assert outcomes[1].ok

    def test_keyboard_interrupt_contained(self) -> None:
        def interrupted(sig: signal.Signals) -> None:
            raise KeyboardInterrupt

        outcomes = dispatch_handlers([(HandlerID(1), interrupted)], signal.SIGINT)

        assert isinstance(outcomes[0].error, KeyboardInterrupt)


class TestHandlerOutcome:
    def test_ok_without_error(self) -> None:
        assert HandlerOutcome(handler_id=HandlerID(1)).ok is True

    def test_not_ok_with_error(self) -> None:
        outcome = HandlerOutcome(handler_id=HandlerID(1), error=RuntimeError())
        assert outcome.ok is False
