"""Error taxonomy for the desktop bootstrap."""


class ShellError(Exception):
    """Base class for bootstrap failures."""


class PortExhausted(ShellError):
    """Every candidate port failed to bind; startup cannot continue."""

    def __init__(self, preferred_port: int, attempts: int):
        self.preferred_port = preferred_port
        self.attempts = attempts
        super().__init__(
            f"No free port found after {attempts} attempts (preferred {preferred_port})"
        )


class ServiceLaunchError(ShellError):
    """The daemon entry point raised or exited abnormally."""

    def __init__(self, cause: BaseException):
        self.cause = cause
        super().__init__(f"Daemon failed: {cause}")


class ProbeTransientError(ShellError):
    """A single liveness request failed; the probe backs off and retries."""

    def __init__(self, url: str, cause: BaseException):
        self.url = url
        self.cause = cause
        super().__init__(f"{url} not reachable yet: {cause}")


class NavigationError(ShellError):
    """Loading the daemon UI into the window failed."""

    def __init__(self, url: str, cause: BaseException):
        self.url = url
        self.cause = cause
        super().__init__(f"Failed to load {url}: {cause}")
