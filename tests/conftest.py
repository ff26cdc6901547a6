import os
import socket
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

# pystray picks its backend at import time; headless runners have no display
os.environ.setdefault("PYSTRAY_BACKEND", "dummy")

from taker_desktop.config import Settings  # noqa: E402


class FakeWindowHost:
    """Records every call the lifecycle controller makes."""

    def __init__(self, post=None, fail_navigation=False):
        self.post = post
        self.fail_navigation = fail_navigation
        self.calls = []
        self.loaded = []
        self.errors = []
        self.quit_count = 0

    def create(self):
        self.calls.append("create")

    def show(self):
        self.calls.append("show")

    def minimize(self):
        self.calls.append("minimize")

    def load_url(self, url):
        self.calls.append("load_url")
        if self.fail_navigation:
            raise ConnectionError("navigation aborted")
        self.loaded.append(url)

    def show_error(self, message):
        self.calls.append("show_error")
        self.errors.append(message)

    def set_taskbar_visible(self, visible):
        self.calls.append(f"taskbar:{visible}")

    def set_dock_visible(self, visible):
        self.calls.append(f"dock:{visible}")

    def quit(self):
        self.calls.append("quit")
        self.quit_count += 1


class FakeTray:
    instances = 0

    def __init__(self, post=None):
        FakeTray.instances += 1
        self.post = post
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True


@pytest.fixture
def fake_host():
    return FakeWindowHost()


@pytest.fixture
def fake_host_cls():
    return FakeWindowHost


@pytest.fixture
def fake_tray_cls():
    FakeTray.instances = 0
    return FakeTray


@pytest.fixture
def shell_settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=str(tmp_path),
        network="testnet",
        start_minimized=False,
        packaged=False,
    )


@pytest.fixture
def occupied_port():
    """A loopback port held by a listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()
