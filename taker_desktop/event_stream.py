"""Latest-value subscription to a server-sent event stream.

Feed it the lines of an open SSE response (``httpx.Response.iter_lines()``);
it keeps the decoded JSON payload of the most recent event with the wanted
name that passes ``predicate``.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Iterator

import httpx

logger = logging.getLogger("taker_desktop.event_stream")


class LatestEvent:
    def __init__(
        self,
        event_name: str,
        mapping: Callable[[dict], Any] | None = None,
        predicate: Callable[[Any], bool] | None = None,
    ):
        self.event_name = event_name
        self.mapping = mapping
        self.predicate = predicate
        self.latest: Any = None
        self._event = "message"
        self._data: list[str] = []

    def feed(self, line: str) -> bool:
        """Process one line. Returns True when ``latest`` changed."""
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return False

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return False

    def follow(self, lines: Iterable[str]) -> Iterator[Any]:
        """Yield the latest value every time a matching event arrives."""
        for line in lines:
            if self.feed(line):
                yield self.latest

    def consume(self, lines: Iterable[str]) -> Any:
        for _ in self.follow(lines):
            pass
        return self.latest

    def _dispatch(self) -> bool:
        name, data = self._event, "\n".join(self._data)
        self._event, self._data = "message", []
        if name != self.event_name or not data:
            return False

        try:
            value = json.loads(data, object_hook=self.mapping)
        except json.JSONDecodeError as e:
            logger.warning("Dropping malformed %s event: %s", name, e)
            return False
        if self.predicate is not None and not self.predicate(value):
            return False
        self.latest = value
        return True


def subscribe(
    url: str,
    event_name: str,
    mapping: Callable[[dict], Any] | None = None,
    predicate: Callable[[Any], bool] | None = None,
    client: httpx.Client | None = None,
) -> Iterator[Any]:
    """Open ``url`` as an event stream and yield each new latest value."""
    owned = client is None
    client = client or httpx.Client(timeout=None)
    try:
        with client.stream("GET", url, headers={"Accept": "text/event-stream"}) as response:
            response.raise_for_status()
            yield from LatestEvent(event_name, mapping, predicate).follow(response.iter_lines())
    finally:
        if owned:
            client.close()
