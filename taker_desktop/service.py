"""Daemon supervision.

The daemon is started with exactly three parameters (network, data dir, port)
and watched on a background thread. Its outcome is reported through
``on_stopped``; the supervisor never restarts it and a failure never tears
down the window or tray.

Two entry points are provided:

1. ``EmbeddedDaemon`` serves the daemon's ASGI app in-process with uvicorn
   (works in frozen builds that bundle the daemon package).
2. ``ExternalDaemon`` spawns a daemon executable as a child process.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
from pathlib import Path
from typing import Any, Callable, Protocol

import uvicorn

from taker_desktop.errors import ServiceLaunchError

logger = logging.getLogger("taker_desktop.service")

DAEMON_ENV = "desktop"


class EntryPoint(Protocol):
    def __call__(self, network: str, data_dir: str, port: int) -> None: ...


def _daemon_environ(network: str, data_dir: str, port: int) -> dict[str, str]:
    return {
        "DAEMON_ENV": DAEMON_ENV,
        "DAEMON_NETWORK": network,
        "DAEMON_DATA_DIR": data_dir,
        "DAEMON_HTTP_ADDRESS": f"127.0.0.1:{port}",
    }


class EmbeddedDaemon:
    """Run the daemon ASGI app (object or "module:attr" string) in this process."""

    def __init__(self, app: Any, log_level: str = "warning"):
        self.app = app
        self.log_level = log_level
        self.server: uvicorn.Server | None = None

    def __call__(self, network: str, data_dir: str, port: int) -> None:
        os.environ.update(_daemon_environ(network, data_dir, port))
        config = uvicorn.Config(self.app, host="127.0.0.1", port=port, log_level=self.log_level)
        self.server = uvicorn.Server(config)
        try:
            self.server.run()
        except SystemExit as e:
            # uvicorn exits on import or bind errors
            raise RuntimeError(f"uvicorn exited with status {e.code}") from e
        if not self.server.started:
            raise RuntimeError("daemon did not start")

    def stop(self) -> None:
        if self.server is not None:
            self.server.should_exit = True


class ExternalDaemon:
    """Spawn a daemon executable and wait for it to exit."""

    def __init__(self, command: str | list[str]):
        self.command = [command] if isinstance(command, str) else list(command)
        self.process: subprocess.Popen | None = None

    def build_command(self, network: str, data_dir: str, port: int) -> list[str]:
        return [
            *self.command,
            f"--network={network}",
            f"--data-dir={data_dir}",
            f"--http-address=127.0.0.1:{port}",
        ]

    def __call__(self, network: str, data_dir: str, port: int) -> None:
        cmd = self.build_command(network, data_dir, port)
        log_dir = Path(data_dir) / "logs"
        log_dir.mkdir(parents=True, exist_ok=True)
        log_path = log_dir / "daemon.log"

        env = os.environ.copy()
        env.update(_daemon_environ(network, data_dir, port))
        with open(log_path, "a", encoding="utf-8") as log_file:
            popen_kwargs = dict(
                cwd=data_dir,
                stdout=log_file,
                stderr=subprocess.STDOUT,
                env=env,
            )
            if platform.system().lower().startswith("win"):
                popen_kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)
            else:
                popen_kwargs["start_new_session"] = True

            self.process = subprocess.Popen(cmd, **popen_kwargs)
            logger.info("Daemon process started: %s (pid=%d, log=%s)", cmd, self.process.pid, log_path)
            returncode = self.process.wait()

        if returncode != 0:
            raise RuntimeError(f"daemon exited with status {returncode}")

    def stop(self) -> None:
        if self.process is None or self.process.poll() is not None:
            return
        self.process.terminate()
        try:
            self.process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            logger.warning("Daemon pid=%d did not terminate, killing", self.process.pid)
            self.process.kill()


class ServiceHandle:
    """One daemon run. Resolves once, when the entry point returns or raises."""

    def __init__(self, network: str, data_dir: str, port: int):
        self.network = network
        self.data_dir = data_dir
        self.port = port
        self.error: ServiceLaunchError | None = None
        self._done = threading.Event()

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._done.wait(timeout)

    def _resolve(self, error: ServiceLaunchError | None = None) -> None:
        self.error = error
        self._done.set()


class ServiceSupervisor:
    def __init__(
        self,
        entry_point: EntryPoint,
        on_stopped: Callable[[ServiceHandle], None] | None = None,
    ):
        self.entry_point = entry_point
        self.on_stopped = on_stopped
        self.handle: ServiceHandle | None = None

    def launch(self, network: str, data_dir: str | Path, port: int) -> ServiceHandle:
        """Start the daemon on a background thread and return immediately."""
        handle = ServiceHandle(network, str(data_dir), port)
        self.handle = handle
        thread = threading.Thread(target=self._run, args=(handle,), daemon=True, name="daemon")
        thread.start()
        return handle

    def _run(self, handle: ServiceHandle) -> None:
        try:
            self.entry_point(handle.network, handle.data_dir, handle.port)
        except Exception as e:
            logger.error("Daemon failed: %s", e, exc_info=True)
            handle._resolve(ServiceLaunchError(e))
        else:
            logger.info("Stopped daemon.")
            handle._resolve()

        if self.on_stopped is not None:
            self.on_stopped(handle)

    def shutdown(self) -> None:
        """Stop the daemon if its entry point supports it (process exit)."""
        stop = getattr(self.entry_point, "stop", None)
        if stop is not None and self.handle is not None and not self.handle.done:
            logger.info("Stopping daemon")
            stop()
