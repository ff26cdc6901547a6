"""Bootstrap orchestrator: port → daemon → liveness → UI.

Runs once per process after the GUI host signals it is ready:

1. Show the (hidden) main window and create the tray.
2. Allocate a port, preferring ``settings.preferred_port``.
3. Launch the daemon on that port without waiting for it.
4. Probe the daemon until it answers.
5. Load the daemon UI into the window.

All of this is driven by events on one dispatcher thread; port checks, the
probe and the daemon run on their own threads and only post events back.
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Callable

from taker_desktop.config import Settings
from taker_desktop.errors import PortExhausted
from taker_desktop.events import (
    Alive, Dispatcher, Event, PortAllocated, PortAllocationFailed, ServiceStopped,
    ShowRequested, TrayAction, TrayCommand, WindowClosed, WindowReady,
)
from taker_desktop.ports import PortAllocator
from taker_desktop.probe import LivenessProbe
from taker_desktop.service import EntryPoint, ServiceHandle, ServiceSupervisor
from taker_desktop.window import Tray, WindowHost, WindowLifecycleController, close_policy_for

logger = logging.getLogger("taker_desktop.bootstrap")

Post = Callable[[Event], None]


def _spawn(fn: Callable[[], None]) -> None:
    threading.Thread(target=fn, daemon=True, name="port-allocator").start()


class BootstrapOrchestrator:
    def __init__(
        self,
        settings: Settings,
        window_host_factory: Callable[[Post], WindowHost],
        tray_factory: Callable[[Post], Tray],
        entry_point: EntryPoint,
        allocator: PortAllocator | None = None,
        probe_factory: Callable[..., LivenessProbe] = LivenessProbe,
        platform: str = sys.platform,
        run_in_background: Callable[[Callable[[], None]], None] = _spawn,
    ):
        self.settings = settings
        self.network = settings.resolve_network()
        self.data_dir = settings.resolve_data_dir()
        self.platform = platform

        self.dispatcher = Dispatcher(self.handle)
        post = self.dispatcher.post
        self.windows = WindowLifecycleController(
            window_host_factory(post),
            lambda: tray_factory(post),
            close_policy_for(platform),
            start_minimized=settings.start_minimized,
            on_quit=self.terminate,
        )
        self.allocator = allocator or PortAllocator(
            host=settings.host, min_port=settings.min_port, max_port=settings.max_port
        )
        self.supervisor = ServiceSupervisor(entry_point, on_stopped=self._service_stopped)
        self.probe_factory = probe_factory
        self.run_in_background = run_in_background

        self.port: int | None = None
        self.service: ServiceHandle | None = None
        self.probe: LivenessProbe | None = None
        self.terminated = False
        self._started = False

    def start(self) -> None:
        """Entry point once the GUI is ready. Only the first call has an effect."""
        if self._started:
            return
        self._started = True
        self.dispatcher.start()
        self.bootstrap()

    def bootstrap(self) -> None:
        self.dispatcher.post(ShowRequested())
        logger.debug("Waiting for the daemon to become available")
        self.run_in_background(self._allocate_port)

    def _allocate_port(self) -> None:
        try:
            port = self.allocator.allocate(self.settings.preferred_port, self.settings.port_retries)
        except PortExhausted as e:
            self.dispatcher.post(PortAllocationFailed(e))
            return
        self.dispatcher.post(PortAllocated(port))

    def _service_stopped(self, handle: ServiceHandle) -> None:
        self.dispatcher.post(ServiceStopped(handle.error))

    def _on_alive(self, url: str) -> None:
        self.dispatcher.post(Alive(url))

    def handle(self, event: Event) -> None:
        if self.terminated:
            return

        if isinstance(event, ShowRequested):
            self.windows.show()
        elif isinstance(event, WindowReady):
            self.windows.ready()
        elif isinstance(event, WindowClosed):
            self.windows.closed()
        elif isinstance(event, TrayAction):
            if event.command is TrayCommand.QUIT:
                self.windows.quit()
            else:
                self.windows.show()
        elif isinstance(event, PortAllocated):
            self._launch(event.port)
        elif isinstance(event, PortAllocationFailed):
            logger.error("Cannot start daemon: %s", event.error)
            self.windows.fatal(str(event.error))
        elif isinstance(event, Alive):
            logger.info("Daemon is available at %s", event.url)
            self.windows.alive(self.settings.ui_url(self.port))
        elif isinstance(event, ServiceStopped):
            if event.error is not None:
                logger.error("Daemon stopped with error: %s", event.error.cause)
            else:
                logger.info("Daemon stopped")

    def _launch(self, port: int) -> None:
        if self.port is not None:
            logger.warning("Port already allocated (%d), ignoring %d", self.port, port)
            return
        self.port = port

        logger.info("Starting daemon ...")
        logger.info("Network: %s", self.network)
        logger.info("Data Dir: %s", self.data_dir)
        logger.info("Platform: %s", self.platform)
        logger.info("Port: %d", port)

        self.service = self.supervisor.launch(self.network, self.data_dir, port)
        self.probe = self.probe_factory(
            self.settings.host,
            port,
            initial_timeout_ms=self.settings.probe_initial_timeout_ms,
            on_alive=self._on_alive,
            request_timeout=self.settings.probe_request_timeout,
        )
        self.probe.start()

    def terminate(self) -> None:
        """Full shutdown: probe, daemon, tray, window, dispatcher."""
        if self.terminated:
            return
        self.terminated = True
        logger.info("Quitting")
        if self.probe is not None:
            self.probe.stop()
        self.supervisor.shutdown()
        self.windows.stop_tray()
        self.windows.host.quit()
        self.dispatcher.stop()
