"""Liveness probe for the local daemon.

Polls ``GET http://host:port/`` until the first HTTP response of any status
arrives, then reports ``Alive`` once and stops. Connection-level failures are
retried forever with a delay that doubles after every failure; there is no cap
and no jitter, so a slow-starting daemon is never given up on.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

import httpx

from taker_desktop.errors import ProbeTransientError

logger = logging.getLogger("taker_desktop.probe")


@dataclass
class ProbeState:
    timeout_ms: int
    attempt: int = 0


class LivenessProbe:
    def __init__(
        self,
        host: str,
        port: int,
        initial_timeout_ms: int = 500,
        on_alive: Callable[[str], None] | None = None,
        request_timeout: float = 2.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.host = host
        self.port = port
        self.url = f"http://{host}:{port}/"
        self.state = ProbeState(timeout_ms=initial_timeout_ms)
        self.on_alive = on_alive
        self.request_timeout = request_timeout
        self.transport = transport
        # Waits scheduled after each failure, in milliseconds
        self.delays: list[int] = []

        self._stopped = threading.Event()
        self._sleep = sleep or self._stopped.wait
        self._alive = False
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def alive(self) -> bool:
        return self._alive

    def start(self) -> threading.Thread:
        """Run the probe loop on a daemon thread. Safe to call more than once."""
        if self._thread is None:
            self._thread = threading.Thread(target=self.run, daemon=True, name="liveness-probe")
            self._thread.start()
        return self._thread

    def stop(self) -> None:
        """Only used on process shutdown."""
        self._stopped.set()

    def check(self, client: httpx.Client) -> httpx.Response:
        """Single reachability check. Raises ProbeTransientError on connection errors."""
        try:
            return client.get(self.url)
        except httpx.HTTPError as e:
            raise ProbeTransientError(self.url, e) from e

    def run(self) -> None:
        if self._alive:
            return
        with httpx.Client(timeout=self.request_timeout, transport=self.transport) as client:
            while not self._stopped.is_set():
                self.state.attempt += 1
                logger.info(
                    "Probing if daemon is alive at %s (attempt %d)", self.url, self.state.attempt
                )
                try:
                    response = self.check(client)
                except ProbeTransientError as e:
                    delay = self.state.timeout_ms
                    self.delays.append(delay)
                    logger.warning("Could not connect to daemon, next attempt in %dms: %s", delay, e.cause)
                    self.state.timeout_ms = delay * 2
                    self._sleep(delay / 1000)
                    continue

                logger.info("Daemon is available (HTTP %d)", response.status_code)
                self._emit_alive()
                return

    def _emit_alive(self) -> None:
        with self._lock:
            if self._alive:
                return
            self._alive = True
        if self.on_alive is not None:
            self.on_alive(self.url)
