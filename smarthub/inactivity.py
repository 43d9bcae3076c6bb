from __future__ import annotations

import logging
from typing import Callable

from .navigation import InputKind
from .scheduler import Scheduler, Timer

logger = logging.getLogger(__name__)

InputListener = Callable[[InputKind], None]


class InputSource:
    """Fan-out of qualifying user input (click, touch, key press, pointer move)."""

    def __init__(self) -> None:
        self._listeners: list[InputListener] = []

    def subscribe(self, listener: InputListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, kind: InputKind) -> None:
        for listener in list(self._listeners):
            listener(kind)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class InactivityMonitor:
    def __init__(
        self,
        inputs: InputSource,
        scheduler: Scheduler,
        timeout_ms: Callable[[], int],
        on_idle: Callable[[], None],
    ) -> None:
        self._timeout_ms = timeout_ms
        self._on_idle = on_idle
        self._timer = Timer(scheduler, "inactivity")
        self._paused = False
        self._unsubscribe: Callable[[], None] | None = inputs.subscribe(self._on_input)
        self.reset()

    @property
    def armed(self) -> bool:
        return self._timer.active

    def _on_input(self, kind: InputKind) -> None:
        if not self._paused:
            self.reset()

    def _expired(self) -> None:
        logger.debug("no input for %d ms", self._timeout_ms())
        self._on_idle()

    def reset(self) -> None:
        # The timeout is read at arm time so a changed setting applies at once.
        if self._paused or self._unsubscribe is None:
            return
        self._timer.start(self._timeout_ms(), self._expired)

    def pause(self) -> None:
        self._paused = True
        self._timer.cancel()

    def resume(self) -> None:
        self._paused = False
        self.reset()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._timer.cancel()
