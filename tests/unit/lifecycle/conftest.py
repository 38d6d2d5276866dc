"""lifecycle テスト共通フィクスチャ・ヘルパー。"""

from __future__ import annotations

import signal
import threading
from collections.abc import Callable

from lifeline.lifecycle import SignalListener

EXIT_TIMEOUT_SECONDS = 2.0


class FakeInstaller:
    """signal.signal の代替。登録内容を記録し、実際の OS ハンドラは変更しない。"""

    def __init__(self) -> None:
        self.installed: dict[int, object] = {}
        self.calls: list[tuple[int, object]] = []

    def __call__(self, signum: int, handler: object) -> object:
        self.calls.append((signum, handler))
        previous = self.installed.get(signum, signal.SIG_DFL)
        self.installed[signum] = handler
        return previous


class ExitRecorder:
    """exit_func の代替。終了コードを記録しイベントを立てる。"""

    def __init__(self) -> None:
        self.codes: list[int] = []
        self.called = threading.Event()

    def __call__(self, code: int) -> None:
        self.codes.append(code)
        self.called.set()

    def wait(self) -> bool:
        return self.called.wait(timeout=EXIT_TIMEOUT_SECONDS)


def make_listener_factory(
    installer: FakeInstaller, exit_recorder: ExitRecorder
) -> Callable[[Callable[[signal.Signals], object]], SignalListener]:
    """差し替え済みの SignalListener を生成するファクトリを返す。"""

    def factory(dispatch: Callable[[signal.Signals], object]) -> SignalListener:
        return SignalListener(dispatch, exit_func=exit_recorder, install=installer)

    return factory
