"""Typed bootstrap events and the single dispatcher that consumes them.

Worker threads (port check, probe, daemon, GUI callbacks) only ever ``post``
events; every state change happens on the dispatcher's control thread.
"""

from __future__ import annotations

import enum
import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable

from taker_desktop.errors import PortExhausted, ServiceLaunchError

logger = logging.getLogger("taker_desktop.events")


class TrayCommand(enum.Enum):
    SHOW_APP = "Show App"
    QUIT = "Quit"


@dataclass(frozen=True)
class ShowRequested:
    """The host is ready; posted once per run. Tray "Show App" arrives as TrayAction."""


@dataclass(frozen=True)
class PortAllocated:
    port: int


@dataclass(frozen=True)
class PortAllocationFailed:
    error: PortExhausted


@dataclass(frozen=True)
class ServiceStopped:
    error: ServiceLaunchError | None = None


@dataclass(frozen=True)
class Alive:
    url: str


@dataclass(frozen=True)
class WindowReady:
    pass


@dataclass(frozen=True)
class WindowClosed:
    pass


@dataclass(frozen=True)
class TrayAction:
    command: TrayCommand


Event = (
    ShowRequested | PortAllocated | PortAllocationFailed | ServiceStopped | Alive
    | WindowReady | WindowClosed | TrayAction
)

_STOP = object()


class Dispatcher:
    def __init__(self, handler: Callable[[Event], None]):
        self.handler = handler
        self._queue: queue.Queue = queue.Queue()
        self._thread: threading.Thread | None = None

    def post(self, event: Event) -> None:
        self._queue.put(event)

    def start(self) -> threading.Thread:
        if self._thread is None:
            self._thread = threading.Thread(target=self.run, daemon=True, name="bootstrap-control")
            self._thread.start()
        return self._thread

    def stop(self) -> None:
        self._queue.put(_STOP)

    def run(self) -> None:
        while True:
            event = self._queue.get()
            if event is _STOP:
                return
            self._deliver(event)

    def drain(self) -> int:
        """Deliver every queued event on the calling thread. Returns the count."""
        n = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except queue.Empty:
                return n
            if event is _STOP:
                return n
            self._deliver(event)
            n += 1

    def _deliver(self, event: Event) -> None:
        logger.debug("Dispatching %s", event)
        try:
            self.handler(event)
        except Exception as e:
            logger.error("Handler failed for %s: %s", event, e, exc_info=True)
