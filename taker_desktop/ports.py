"""Local port selection for the daemon.

Tries the preferred port first, then uniformly random ports from the
unprivileged range, bounded by a retry budget. A port is considered free when
a throwaway listener can bind it on the loopback address; the listener is
released straight away, so another process may still grab the port before the
daemon binds it.
"""

from __future__ import annotations

import logging
import random
import socket
from dataclasses import dataclass, field
from typing import Callable

from taker_desktop.errors import PortExhausted

logger = logging.getLogger("taker_desktop.ports")

MIN_PORT = 10_000
MAX_PORT = 65_535


@dataclass
class RetryBudget:
    remaining: int

    def spend(self) -> bool:
        """Consume one retry. Returns False once the budget is exhausted."""
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


def check_port_free(host: str, port: int) -> int:
    """Bind and immediately release a listener on (host, port).

    Raises OSError (or OverflowError for out-of-range ports) when the bind fails.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, port))
        sock.listen(1)
        return sock.getsockname()[1]


@dataclass
class PortAllocator:
    host: str = "127.0.0.1"
    min_port: int = MIN_PORT
    max_port: int = MAX_PORT
    bind_check: Callable[[str, int], int] = check_port_free
    rng: random.Random = field(default_factory=random.Random)

    # Outcome of the last allocate() call, kept for diagnostics
    budget: RetryBudget | None = None
    attempts: int = 0
    bind_failures: list[int] = field(default_factory=list)

    def random_candidate(self) -> int:
        return self.rng.randint(self.min_port, self.max_port)

    def allocate(self, preferred_port: int, max_retries: int) -> int:
        """Return a port that was free at check time, or raise PortExhausted.

        Makes at most ``max_retries + 1`` bind attempts.
        """
        self.budget = RetryBudget(max(0, max_retries))
        self.attempts = 0
        self.bind_failures = []

        port = preferred_port
        while True:
            self.attempts += 1
            logger.debug("Trying port: %d", port)
            try:
                self.bind_check(self.host, port)
            except (OSError, OverflowError) as e:
                self.bind_failures.append(port)
                if not self.budget.spend():
                    logger.error(
                        "Port %d is not available (%s). Reached max amount of retries", port, e
                    )
                    raise PortExhausted(preferred_port, self.attempts) from e
                logger.info(
                    "Port %d is not available (%s), retrying another random port. Retries left: %d",
                    port, e, self.budget.remaining,
                )
                port = self.random_candidate()
                continue

            logger.debug("Found open port: %d", port)
            return port
