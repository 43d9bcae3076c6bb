from __future__ import annotations

import logging
from typing import Callable

from .config import FORECAST_RETURN_MS, TRANSITION_MS
from .inactivity import InactivityMonitor, InputSource
from .navigation import (
    AnimationFinished,
    Event,
    ForecastTimeout,
    IdleTimeout,
    InputKind,
    NavigationState,
    Page,
    PrimaryPress,
    ScreensaverExit,
    SecondaryPress,
    UserInput,
    reduce,
)
from .panel import SettingsPanel
from .scheduler import AsyncioScheduler, Scheduler, TaskTracker, Timer
from .screensaver import ScreensaverPlayer
from .settings import DisplaySettings, SettingsStore
from .sync import ImageSyncFacade

logger = logging.getLogger(__name__)

StateListener = Callable[[NavigationState], None]


class DisplayController:
    """Drives the hub's views: dashboard, forecast, settings and screensaver.

    Navigation itself is decided by :func:`smarthub.navigation.reduce`; this
    class feeds it events and turns every state change into timer work
    (transition end, forecast auto-return, idle detection, slideshow).

    Must be created while an event loop is running.
    """

    def __init__(
        self,
        images: ImageSyncFacade,
        settings: SettingsStore,
        scheduler: Scheduler | None = None,
        inputs: InputSource | None = None,
    ) -> None:
        self.scheduler = scheduler or AsyncioScheduler()
        self.inputs = inputs or InputSource()
        self.images = images
        self.settings = settings
        self.state = NavigationState()
        self._listeners: list[StateListener] = []
        self._tasks = TaskTracker()
        self._transition_timer = Timer(self.scheduler, "transition")
        self._forecast_timer = Timer(self.scheduler, "forecast-return")

        self.player = ScreensaverPlayer(
            images, self.scheduler, lambda: self.settings.current.image_duration_ms, self._tasks
        )
        self.panel = SettingsPanel(images, settings)

        self._unsubscribe_input = self.inputs.subscribe(self._on_input)
        self.monitor = InactivityMonitor(
            self.inputs,
            self.scheduler,
            lambda: self.settings.current.inactivity_timeout_ms,
            self._on_idle,
        )
        self._unsubscribe_settings = settings.subscribe(self._on_settings_changed)

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: Event) -> NavigationState:
        old = self.state
        new = reduce(old, event)
        if new == old:
            return old

        self.state = new
        logger.debug("%s: %s -> %s", type(event).__name__, old.visible_view, new.visible_view)
        self._apply(old, new)
        for listener in list(self._listeners):
            listener(new)
        return new

    def _apply(self, old: NavigationState, new: NavigationState) -> None:
        if new.animation_id != old.animation_id:
            animation_id = new.animation_id
            self._transition_timer.start(
                TRANSITION_MS, lambda: self.dispatch(AnimationFinished(animation_id))
            )

        if new.forecast_return_armed and not old.forecast_return_armed:
            self._forecast_timer.start(FORECAST_RETURN_MS, lambda: self.dispatch(ForecastTimeout()))
        elif not new.forecast_return_armed:
            self._forecast_timer.cancel()

        if new.is_screensaver_active and not old.is_screensaver_active:
            logger.info("screensaver on")
            self.monitor.pause()
            self.player.activate()
        elif old.is_screensaver_active and not new.is_screensaver_active:
            logger.info("screensaver off, back to %s", new.current_page.value)
            self.player.stop()
            self.monitor.resume()

        if new.current_page is Page.SETTINGS and old.current_page is not Page.SETTINGS:
            self._tasks.spawn(self.panel.load(), "settings-load")

    def _on_input(self, kind: InputKind) -> None:
        if self.state.is_screensaver_active:
            self.dispatch(UserInput(kind))

    def _on_idle(self) -> None:
        self.dispatch(IdleTimeout())

    def _on_settings_changed(self, settings: DisplaySettings) -> None:
        self.monitor.reset()
        self.player.restart_interval()

    def _wake(self) -> bool:
        """Count a button press as input; True if it only woke the screensaver."""
        was_active = self.state.is_screensaver_active
        self.inputs.emit(InputKind.CLICK)
        return was_active

    def press_primary(self) -> None:
        if not self._wake():
            self.dispatch(PrimaryPress())

    def press_secondary(self) -> None:
        if not self._wake():
            self.dispatch(SecondaryPress())

    def user_input(self, kind: InputKind) -> None:
        self.inputs.emit(kind)

    def exit_screensaver(self) -> None:
        self.dispatch(ScreensaverExit())

    async def settle(self) -> None:
        """Wait for background loads (slideshow, settings panel) to finish."""
        await self._tasks.wait()

    async def close(self) -> None:
        self._transition_timer.cancel()
        self._forecast_timer.cancel()
        self.player.stop()
        self.monitor.close()
        self._unsubscribe_input()
        self._unsubscribe_settings()
        self._listeners.clear()
        await self._tasks.stop()
