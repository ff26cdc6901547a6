"""System tray icon with the "Show App" and "Quit" entries."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

import pystray
from PIL import Image

from taker_desktop.events import Event, TrayAction, TrayCommand

logger = logging.getLogger("taker_desktop.tray")

ICON_PATH = Path(__file__).resolve().parent / "assets" / "tray.png"


def load_icon_image(path: Path = ICON_PATH) -> Image.Image:
    if path.exists():
        return Image.open(path)
    # Plain square when no icon asset is shipped
    return Image.new("RGB", (64, 64), color="#25d0ff")


class TrayIcon:
    def __init__(self, title: str, post: Callable[[Event], None], image: Image.Image | None = None):
        self.title = title
        self.post = post
        self.image = image
        self.icon: pystray.Icon | None = None

    def build_menu(self) -> pystray.Menu:
        return pystray.Menu(
            pystray.MenuItem(TrayCommand.SHOW_APP.value, self._show_app, default=True),
            pystray.MenuItem(TrayCommand.QUIT.value, self._quit),
        )

    def start(self) -> None:
        if self.icon is not None:
            return
        self.icon = pystray.Icon(
            "taker_desktop", self.image or load_icon_image(), self.title, self.build_menu()
        )
        # The GUI loop belongs to the window toolkit
        self.icon.run_detached()

    def stop(self) -> None:
        if self.icon is not None:
            self.icon.stop()

    def _show_app(self, icon=None, item=None) -> None:
        self.post(TrayAction(TrayCommand.SHOW_APP))

    def _quit(self, icon=None, item=None) -> None:
        self.post(TrayAction(TrayCommand.QUIT))
