import os
import sys
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

APP_NAME = "Taker Desktop"
PROJECT_DIR = Path(__file__).resolve().parents[1]


def _user_data_dir() -> Path:
    """Per-user application data directory (packaged builds)."""
    if sys.platform == "win32":
        base = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config")
    return base / APP_NAME


def _development_data_dir() -> Path:
    """Source checkout when running from one, else a per-user dev directory."""
    if (PROJECT_DIR / "pyproject.toml").exists():
        return PROJECT_DIR
    return _user_data_dir().with_name(f"{APP_NAME} Dev")


class Settings(BaseSettings):
    model_config = {"env_prefix": "TAKER_", "env_file": ".env", "extra": "ignore", "populate_by_name": True}

    # Port selection
    host: str = "127.0.0.1"
    preferred_port: int = 7113
    port_retries: int = 5
    min_port: int = 10_000
    max_port: int = 65_535

    # Liveness probing
    probe_initial_timeout_ms: int = 500
    probe_request_timeout: float = 2.0

    # Environment
    packaged: bool = Field(default_factory=lambda: bool(getattr(sys, "frozen", False)))
    network: str | None = None
    data_dir: str | None = None
    start_minimized: bool = Field(
        default=False,
        validation_alias=AliasChoices("TAKER_START_MINIMIZED", "START_MINIMIZED"),
    )
    debug: bool = False

    # Daemon launch: in-process ASGI app, or an external executable when set
    service_app: str = "taker.main:app"
    service_command: str | None = None

    # Window
    window_title: str = APP_NAME
    window_width: int = 1024
    window_height: int = 728

    log_level: str = "INFO"

    def resolve_network(self) -> str:
        if self.network:
            return self.network
        return "mainnet" if self.packaged else "testnet"

    def resolve_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        return _user_data_dir() if self.packaged else _development_data_dir()

    def ui_url(self, port: int) -> str:
        return f"http://{self.host}:{port}"


settings = Settings()
