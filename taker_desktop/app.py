"""Desktop entry: wire settings, logging, pywebview and the orchestrator."""

import logging
import shlex

import webview

from taker_desktop.config import settings
from taker_desktop.logging_config import setup_logging
from taker_desktop.orchestrator import BootstrapOrchestrator
from taker_desktop.service import EmbeddedDaemon, ExternalDaemon
from taker_desktop.tray import TrayIcon
from taker_desktop.webview_host import WebviewWindowHost

logger = logging.getLogger("taker_desktop.entry")


def build_entry_point():
    if settings.service_command:
        return ExternalDaemon(shlex.split(settings.service_command))
    return EmbeddedDaemon(settings.service_app)


def main() -> int:
    setup_logging(settings.resolve_data_dir() / "logs", settings.log_level)
    logger.info("Taker Desktop starting")

    def window_host_factory(post):
        host = WebviewWindowHost(settings, post)
        host.prepare()
        return host

    orchestrator = BootstrapOrchestrator(
        settings,
        window_host_factory=window_host_factory,
        tray_factory=lambda post: TrayIcon(settings.window_title, post),
        entry_point=build_entry_point(),
    )

    # Links that open new windows go to the user's browser
    webview.settings["OPEN_EXTERNAL_LINKS_IN_BROWSER"] = True
    webview.start(orchestrator.start, debug=settings.debug)

    orchestrator.terminate()
    logger.info("Taker Desktop stopped")
    return 0
