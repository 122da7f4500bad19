"""Dev entry point: python -m dispatch_gateway."""
from dispatcher.bootstrap import build_engine

from dispatch_gateway.app import create_app
from dispatch_gateway.config import GatewayConfig


def main() -> None:
    config = GatewayConfig()
    app = create_app(build_engine(), config.log_level)
    app.run(host=config.host, port=config.port, threaded=True)


if __name__ == "__main__":
    main()
