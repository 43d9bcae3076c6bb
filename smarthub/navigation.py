"""Page navigation and screensaver state as a pure reducer.

``reduce(state, event)`` never touches timers or I/O; the display controller
looks at each old/new pair and arms or cancels timers accordingly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Page(str, Enum):
    MAIN = "main"
    FORECAST = "forecast"
    SETTINGS = "settings"


class InputKind(str, Enum):
    CLICK = "click"
    TOUCH = "touch"
    KEY = "key"
    MOVE = "move"


@dataclass(frozen=True)
class NavigationState:
    current_page: Page = Page.MAIN
    previous_page: Page | None = None
    is_animating: bool = False
    animation_id: int = 0
    is_screensaver_active: bool = False

    @property
    def visible_view(self) -> str:
        return "screensaver" if self.is_screensaver_active else self.current_page.value

    @property
    def forecast_return_armed(self) -> bool:
        return self.current_page is Page.FORECAST and not self.is_screensaver_active


@dataclass(frozen=True)
class PrimaryPress:
    pass


@dataclass(frozen=True)
class SecondaryPress:
    pass


@dataclass(frozen=True)
class AnimationFinished:
    animation_id: int


@dataclass(frozen=True)
class ForecastTimeout:
    pass


@dataclass(frozen=True)
class IdleTimeout:
    pass


@dataclass(frozen=True)
class UserInput:
    kind: InputKind = InputKind.CLICK


@dataclass(frozen=True)
class ScreensaverExit:
    pass


Event = (
    PrimaryPress
    | SecondaryPress
    | AnimationFinished
    | ForecastTimeout
    | IdleTimeout
    | UserInput
    | ScreensaverExit
)


def _begin_transition(state: NavigationState, target: Page) -> NavigationState:
    return replace(
        state,
        current_page=target,
        previous_page=state.current_page,
        is_animating=True,
        animation_id=state.animation_id + 1,
    )


def reduce(state: NavigationState, event: Event) -> NavigationState:
    if isinstance(event, (UserInput, ScreensaverExit)):
        if state.is_screensaver_active:
            return replace(state, is_screensaver_active=False)
        return state

    if isinstance(event, IdleTimeout):
        if state.is_screensaver_active:
            return state
        return replace(state, is_screensaver_active=True)

    if isinstance(event, AnimationFinished):
        if state.is_animating and event.animation_id == state.animation_id:
            return replace(state, is_animating=False)
        return state

    if state.is_screensaver_active:
        return state

    if isinstance(event, PrimaryPress):
        if state.is_animating or state.current_page is Page.SETTINGS:
            return state
        target = Page.FORECAST if state.current_page is Page.MAIN else Page.MAIN
        return _begin_transition(state, target)

    if isinstance(event, SecondaryPress):
        if state.is_animating:
            return state
        target = Page.MAIN if state.current_page is Page.SETTINGS else Page.SETTINGS
        return replace(state, current_page=target, previous_page=state.current_page)

    if isinstance(event, ForecastTimeout):
        if state.current_page is not Page.FORECAST or state.is_animating:
            return state
        return _begin_transition(state, Page.MAIN)

    raise TypeError(f"unknown navigation event: {event!r}")
