from unittest.mock import MagicMock

import pytest
from flask import Flask
from flask.testing import FlaskClient

from dispatcher.backoff import RetryPolicy
from dispatcher.engine import DispatchEngine
from dispatcher.senders import ChannelRegistry, ChannelSender, SendResult
from dispatcher.sinks import InMemoryResultSink

from dispatch_gateway.app import create_app


@pytest.fixture()
def email_sender() -> MagicMock:
    sender = MagicMock(spec=ChannelSender)
    sender.send.return_value = SendResult.success(202)
    return sender


@pytest.fixture()
def sms_sender() -> MagicMock:
    sender = MagicMock(spec=ChannelSender)
    sender.send.return_value = SendResult.success(200)
    return sender


@pytest.fixture()
def sink() -> InMemoryResultSink:
    return InMemoryResultSink()


@pytest.fixture()
def engine(email_sender: MagicMock, sms_sender: MagicMock, sink: InMemoryResultSink):
    engine = DispatchEngine(
        ChannelRegistry({"email": email_sender, "sms": sms_sender}),
        sink,
        max_concurrency=2,
        policy=RetryPolicy(max_attempts=3, base_seconds=0.0, cap_seconds=0.0, jitter=0.0),
    )
    yield engine
    engine.close()


@pytest.fixture()
def app(engine: DispatchEngine) -> Flask:
    app = create_app(engine)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    return app.test_client()
