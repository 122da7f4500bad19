"""Entry point: dispatch JSON-lines notification requests.

Reads one request per line from FILE (stdin when omitted), dispatches
them with the configured engine and prints one outcome per line:

    echo '{"title": "Hi", "content": "Hello", "channel": "email",
           "recipient": "a@example.com"}' | python -m dispatcher

Exit status is 0 when every request was delivered, 1 otherwise.  SIGTERM
stops reading input and cancels pending retries.
"""

import argparse
import json
import logging
import signal
import sys
import threading

from dispatcher.bootstrap import build_engine
from dispatcher.config import DispatchConfig
from dispatcher.engine import DispatchHandle
from dispatcher.log import setup_logging
from dispatcher.sources import JsonLinesRequestSource, pump

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Dispatch notification requests")
    parser.add_argument(
        "file",
        nargs="?",
        type=argparse.FileType("r"),
        default=sys.stdin,
        help="JSON-lines file of requests (default: stdin)",
    )
    args = parser.parse_args(argv)

    config = DispatchConfig()
    setup_logging(config.log_level)

    engine = build_engine(config)
    stop = threading.Event()
    handles: list[DispatchHandle] = []

    def _shutdown(signum: int, _frame: object) -> None:
        logger.info("Received %s, stopping intake and pending retries", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGTERM, _shutdown)

    delivered = 0
    try:
        with args.file:
            handles = pump(JsonLinesRequestSource(args.file), engine, stop=stop)
        for handle in handles:
            outcome = handle.result()
            delivered += outcome.ok
            print(json.dumps(outcome.to_dict()), flush=True)
    finally:
        engine.close()

    logger.info(
        "Dispatch run finished",
        extra={"requests": len(handles), "delivered": delivered},
    )
    return 0 if delivered == len(handles) and not stop.is_set() else 1


if __name__ == "__main__":
    sys.exit(main())
