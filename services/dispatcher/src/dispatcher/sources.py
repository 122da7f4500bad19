"""Request sources: where NotificationRequests come from.

The CRUD layer that owns notification records lives elsewhere; these
adapters only turn its output into requests the engine can take.
"""

import json
import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator
from typing import Any, TextIO

from shared.notifications import NotificationRequest, parse_request

from dispatcher.engine import DispatchEngine, DispatchHandle

logger = logging.getLogger(__name__)


class RequestSource(ABC):
    """Iterable of requests, consumed once."""

    @abstractmethod
    def __iter__(self) -> Iterator[NotificationRequest]:
        ...


class IterableRequestSource(RequestSource):
    """Wraps requests or raw mappings already in memory.

    Raw mappings go through ``parse_request``; malformed ones are logged
    and skipped.
    """

    def __init__(self, items: Iterable[NotificationRequest | dict[str, Any]]) -> None:
        self._items = items

    def __iter__(self) -> Iterator[NotificationRequest]:
        for position, item in enumerate(self._items):
            if isinstance(item, NotificationRequest):
                yield item
                continue
            try:
                yield parse_request(item)
            except ValueError:
                logger.warning(
                    "Malformed request, skipping",
                    exc_info=True,
                    extra={"position": position},
                )


class JsonLinesRequestSource(RequestSource):
    """One JSON object per line from a text stream; blank lines ignored."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream

    def __iter__(self) -> Iterator[NotificationRequest]:
        for lineno, line in enumerate(self._stream, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                raw = json.loads(line)
            except json.JSONDecodeError:
                logger.error("Invalid JSON, skipping line", extra={"line": lineno})
                continue
            try:
                yield parse_request(raw)
            except ValueError:
                logger.warning(
                    "Malformed request, skipping line",
                    exc_info=True,
                    extra={"line": lineno},
                )


def pump(
    source: Iterable[NotificationRequest],
    engine: DispatchEngine,
    stop: threading.Event | None = None,
) -> list[DispatchHandle]:
    """Submit every request from *source* asynchronously.

    Blocks whenever the engine's slots are all taken, so a fast source is
    throttled to the engine's pace.  Setting *stop* ends intake before the
    next request and cancels every dispatch submitted so far, including
    one still waiting for a slot.
    """
    handles: list[DispatchHandle] = []
    for request in source:
        if stop is not None and stop.is_set():
            logger.info("Intake stopped", extra={"submitted": len(handles)})
            break
        handles.append(engine.submit_async(request, cancel=stop))
    return handles
