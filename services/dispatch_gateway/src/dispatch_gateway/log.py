"""Logging setup for dispatch_gateway (delegates to shared)."""

from shared.log import JsonFormatter, setup_logging as _setup

__all__ = ["JsonFormatter", "setup_logging"]


def setup_logging(level: str = "INFO") -> None:
    _setup(
        level,
        suppress=["werkzeug", "httpx", "httpcore", "confluent_kafka"],
        service="dispatch_gateway",
    )
