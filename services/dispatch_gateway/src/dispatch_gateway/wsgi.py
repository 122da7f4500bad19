"""WSGI entry point for gunicorn.

Usage:
    gunicorn dispatch_gateway.wsgi:app --bind 0.0.0.0:8000 --threads 8

The engine's concurrency limit applies per worker process.
"""
from dispatcher.bootstrap import build_engine

from dispatch_gateway.app import create_app
from dispatch_gateway.config import GatewayConfig

app = create_app(build_engine(), GatewayConfig().log_level)
