"""Main window and tray lifecycle.

``WindowLifecycle`` is the pure state machine: each input returns the list of
effects to perform and never touches a GUI object. ``WindowLifecycleController``
owns the window host and the tray and applies those effects.

Close policy per platform:

- Windows (taskbar): closing hides the window from the taskbar; the process
  keeps running in the tray.
- macOS (dock): closing hides the dock icon; the process keeps running.
- anything else: closing the last window quits the application.

The tray "Quit" entry always quits.
"""

from __future__ import annotations

import enum
import logging
import sys
from dataclasses import dataclass
from typing import Callable, Protocol

from taker_desktop.errors import NavigationError

logger = logging.getLogger("taker_desktop.window")


class WindowState(enum.Enum):
    ABSENT = "absent"
    CREATED_HIDDEN = "created-hidden"
    CREATED_VISIBLE = "created-visible"
    CLOSED = "closed"


class TrayState(enum.Enum):
    ABSENT = "absent"
    PRESENT = "present"


class ClosePolicy(enum.Enum):
    HIDE_FROM_TASKBAR = "taskbar"
    HIDE_DOCK = "dock"
    QUIT = "quit"


def close_policy_for(platform: str = sys.platform) -> ClosePolicy:
    if platform == "win32":
        return ClosePolicy.HIDE_FROM_TASKBAR
    if platform == "darwin":
        return ClosePolicy.HIDE_DOCK
    return ClosePolicy.QUIT


class Op(enum.Enum):
    CREATE_WINDOW = "create-window"
    SHOW_WINDOW = "show-window"
    MINIMIZE_WINDOW = "minimize-window"
    CREATE_TRAY = "create-tray"
    SHOW_IN_TASKBAR = "show-in-taskbar"
    HIDE_FROM_TASKBAR = "hide-from-taskbar"
    SHOW_DOCK = "show-dock"
    HIDE_DOCK = "hide-dock"
    LOAD_URL = "load-url"
    SHOW_ERROR = "show-error"
    QUIT = "quit"


@dataclass(frozen=True)
class Effect:
    op: Op
    arg: str | None = None


_LIVE = (WindowState.CREATED_HIDDEN, WindowState.CREATED_VISIBLE)


class WindowLifecycle:
    def __init__(self, policy: ClosePolicy, start_minimized: bool = False):
        self.policy = policy
        self.start_minimized = start_minimized
        self.state = WindowState.ABSENT
        self.tray = TrayState.ABSENT
        self.live_url: str | None = None
        self.loaded_url: str | None = None
        self.error: str | None = None

    @property
    def window_exists(self) -> bool:
        return self.state in _LIVE

    def show_requested(self) -> list[Effect]:
        effects = []
        if self.policy is ClosePolicy.HIDE_FROM_TASKBAR and self.state is not WindowState.ABSENT:
            effects.append(Effect(Op.SHOW_IN_TASKBAR))
        elif self.policy is ClosePolicy.HIDE_DOCK:
            effects.append(Effect(Op.SHOW_DOCK))

        if self.tray is TrayState.ABSENT:
            self.tray = TrayState.PRESENT
            effects.append(Effect(Op.CREATE_TRAY))

        if self.state is WindowState.CREATED_VISIBLE:
            effects.append(Effect(Op.SHOW_WINDOW))
        elif self.state in (WindowState.ABSENT, WindowState.CLOSED):
            self.state = WindowState.CREATED_HIDDEN
            effects.append(Effect(Op.CREATE_WINDOW))
            effects.extend(self._content())
        return effects

    def window_ready(self) -> list[Effect]:
        if self.state is not WindowState.CREATED_HIDDEN:
            return []
        self.state = WindowState.CREATED_VISIBLE
        if self.start_minimized:
            return [Effect(Op.MINIMIZE_WINDOW)]
        return [Effect(Op.SHOW_WINDOW)]

    def window_closed(self) -> list[Effect]:
        if not self.window_exists:
            return []
        self.state = WindowState.CLOSED
        self.loaded_url = None
        if self.policy is ClosePolicy.HIDE_FROM_TASKBAR:
            return [Effect(Op.HIDE_FROM_TASKBAR)]
        if self.policy is ClosePolicy.HIDE_DOCK:
            return [Effect(Op.HIDE_DOCK)]
        return [Effect(Op.QUIT)]

    def alive(self, url: str) -> list[Effect]:
        self.live_url = url
        if not self.window_exists or self.loaded_url == url:
            return []
        self.loaded_url = url
        return [Effect(Op.LOAD_URL, url)]

    def navigation_failed(self) -> list[Effect]:
        self.loaded_url = None
        return []

    def fatal(self, message: str) -> list[Effect]:
        self.error = message
        if not self.window_exists:
            return []
        return [Effect(Op.SHOW_ERROR, message)]

    def quit(self) -> list[Effect]:
        return [Effect(Op.QUIT)]

    def _content(self) -> list[Effect]:
        # A recreated window gets the daemon UI right away if it is already up.
        if self.live_url is not None:
            self.loaded_url = self.live_url
            return [Effect(Op.LOAD_URL, self.live_url)]
        if self.error is not None:
            return [Effect(Op.SHOW_ERROR, self.error)]
        return []


class WindowHost(Protocol):
    def create(self) -> None: ...
    def show(self) -> None: ...
    def minimize(self) -> None: ...
    def load_url(self, url: str) -> None: ...
    def show_error(self, message: str) -> None: ...
    def set_taskbar_visible(self, visible: bool) -> None: ...
    def set_dock_visible(self, visible: bool) -> None: ...
    def quit(self) -> None: ...


class Tray(Protocol):
    def start(self) -> None: ...
    def stop(self) -> None: ...


class WindowLifecycleController:
    """Applies lifecycle effects to the single window and tray it owns."""

    def __init__(
        self,
        host: WindowHost,
        tray_factory: Callable[[], Tray],
        policy: ClosePolicy,
        start_minimized: bool = False,
        on_quit: Callable[[], None] | None = None,
    ):
        self.host = host
        self.tray_factory = tray_factory
        self.tray: Tray | None = None
        self.lifecycle = WindowLifecycle(policy, start_minimized)
        self.on_quit = on_quit

    @property
    def state(self) -> WindowState:
        return self.lifecycle.state

    def show(self) -> None:
        self._apply(self.lifecycle.show_requested())

    def ready(self) -> None:
        self._apply(self.lifecycle.window_ready())

    def closed(self) -> None:
        logger.info("Window closed (policy: %s)", self.lifecycle.policy.value)
        self._apply(self.lifecycle.window_closed())

    def alive(self, url: str) -> None:
        if not self.lifecycle.window_exists:
            logger.info("Daemon is alive but no window exists; UI loads on next show")
        self._apply(self.lifecycle.alive(url))

    def fatal(self, message: str) -> None:
        self._apply(self.lifecycle.fatal(message))

    def quit(self) -> None:
        self._apply(self.lifecycle.quit())

    def stop_tray(self) -> None:
        if self.tray is not None:
            self.tray.stop()

    def _apply(self, effects: list[Effect]) -> None:
        for effect in effects:
            logger.debug("Window effect: %s", effect)
            op = effect.op
            if op is Op.CREATE_WINDOW:
                self.host.create()
            elif op is Op.SHOW_WINDOW:
                self.host.show()
            elif op is Op.MINIMIZE_WINDOW:
                self.host.minimize()
            elif op is Op.CREATE_TRAY:
                logger.info("Creating tray icon")
                self.tray = self.tray_factory()
                self.tray.start()
            elif op is Op.SHOW_IN_TASKBAR:
                self.host.set_taskbar_visible(True)
            elif op is Op.HIDE_FROM_TASKBAR:
                self.host.set_taskbar_visible(False)
            elif op is Op.SHOW_DOCK:
                self.host.set_dock_visible(True)
            elif op is Op.HIDE_DOCK:
                self.host.set_dock_visible(False)
            elif op is Op.LOAD_URL:
                self._navigate(effect.arg)
            elif op is Op.SHOW_ERROR:
                self.host.show_error(effect.arg)
            elif op is Op.QUIT:
                if self.on_quit is not None:
                    self.on_quit()

    def _navigate(self, url: str) -> None:
        logger.info("Loading daemon UI from %s", url)
        try:
            self.host.load_url(url)
        except Exception as e:
            error = NavigationError(url, e)
            logger.error("%s", error, exc_info=True)
            self._apply(self.lifecycle.navigation_failed())
            return
        logger.info("Successfully loaded daemon UI")
