"""pywebview implementation of the window host.

The native window is created hidden before ``webview.start`` (pywebview needs
one window to run its loop) and is kept across closes: a close is cancelled
and the window hidden, so the GUI loop, the tray and the daemon stay up. The
lifecycle controller decides whether that close then quits the app.
"""

from __future__ import annotations

import html
import logging
from typing import Callable

import webview

from taker_desktop.config import Settings
from taker_desktop.constants import LOADING_HTML, error_html
from taker_desktop.events import Event, WindowClosed, WindowReady

logger = logging.getLogger("taker_desktop.window")


class WebviewWindowHost:
    def __init__(self, settings: Settings, post: Callable[[Event], None]):
        self.settings = settings
        self.post = post
        self.window: webview.Window | None = None
        self._requested = False
        self._loaded = False
        self._quitting = False

    def prepare(self) -> webview.Window:
        """Create the hidden native window showing the loading page."""
        if self.window is None:
            self.window = webview.create_window(
                self.settings.window_title,
                html=LOADING_HTML,
                width=self.settings.window_width,
                height=self.settings.window_height,
                hidden=True,
            )
            self._loaded = False
            self.window.events.loaded += self._on_loaded
            self.window.events.closing += self._on_closing
            self.window.events.closed += self._on_closed
        return self.window

    def create(self) -> None:
        self.prepare()
        self._requested = True
        if self._loaded:
            self.post(WindowReady())

    def show(self) -> None:
        if self.window is not None:
            self.window.show()
            self.window.restore()

    def minimize(self) -> None:
        if self.window is not None:
            self.window.show()
            self.window.minimize()

    def load_url(self, url: str) -> None:
        if self.window is None:
            raise RuntimeError("no window")
        self.window.load_url(url)

    def show_error(self, message: str) -> None:
        if self.window is not None:
            self.window.load_html(error_html(html.escape(message)))

    def set_taskbar_visible(self, visible: bool) -> None:
        # Hidden windows have no taskbar entry; the next show() restores it.
        if not visible and self.window is not None:
            self.window.hide()

    def set_dock_visible(self, visible: bool) -> None:
        if not visible and self.window is not None:
            self.window.hide()
        try:
            from AppKit import (
                NSApplication,
                NSApplicationActivationPolicyAccessory,
                NSApplicationActivationPolicyRegular,
            )
            from PyObjCTools import AppHelper
        except ImportError:
            logger.debug("AppKit not available, dock visibility unchanged")
            return
        policy = NSApplicationActivationPolicyRegular if visible else NSApplicationActivationPolicyAccessory
        # AppKit must be touched from the main thread
        AppHelper.callAfter(NSApplication.sharedApplication().setActivationPolicy_, policy)

    def quit(self) -> None:
        self._quitting = True
        if self.window is not None:
            self.window.destroy()

    def _on_loaded(self) -> None:
        self._loaded = True
        if self._requested:
            self.post(WindowReady())

    def _on_closing(self) -> bool:
        if self._quitting:
            return True
        # Cancel; the controller hides the window according to the close policy
        self._requested = False
        self.post(WindowClosed())
        return False

    def _on_closed(self) -> None:
        self.window = None
        if not self._quitting:
            self.post(WindowClosed())
