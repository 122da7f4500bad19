"""Structured JSON logging shared by the dispatcher and the gateway."""

import json
import logging
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TextIO

# Attributes every LogRecord carries; anything else arrived via `extra=`.
_RESERVED = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    | {"message", "asctime", "taskName"}
)


class JsonFormatter(logging.Formatter):
    """Render each record as one JSON object per line.

    *service* is stamped on every line so that dispatcher and gateway
    output can share a log stream.
    """

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self._service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if self._service is not None:
            entry["service"] = self._service

        entry.update(
            (key, value)
            for key, value in record.__dict__.items()
            if key not in _RESERVED
        )

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


def setup_logging(
    level: str = "INFO",
    suppress: Sequence[str] = (),
    *,
    service: str | None = None,
    stream: TextIO | None = None,
) -> None:
    """Replace root handlers with a single JSON handler.

    Args:
        level: Root log level name; unknown names fall back to INFO.
        suppress: Third-party loggers to raise to WARNING (``httpx``,
                  ``confluent_kafka``, ``werkzeug``...).
        service: Value of the ``service`` field on every line.
        stream: Destination, stdout when omitted.
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JsonFormatter(service))

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)

    for name in suppress:
        logging.getLogger(name).setLevel(logging.WARNING)
