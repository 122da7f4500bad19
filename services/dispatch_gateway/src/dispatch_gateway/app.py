import atexit
import logging

from flask import Flask

from dispatcher.engine import DispatchEngine

from dispatch_gateway.log import setup_logging
from dispatch_gateway.routes import bp

logger = logging.getLogger(__name__)


def create_app(engine: DispatchEngine, log_level: str = "INFO") -> Flask:
    """Flask application factory.

    Args:
        engine: Dispatch engine (real, or a mock in tests). The app closes
            it at interpreter exit.
        log_level: Root log level.
    """
    setup_logging(log_level)

    app = Flask(__name__)
    app.extensions["dispatch_engine"] = engine

    app.register_blueprint(bp)

    atexit.register(engine.close)

    logger.info("Dispatch gateway initialized")
    return app
