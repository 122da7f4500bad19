"""Test fixtures for dispatcher tests."""

import threading
import time
from collections.abc import Callable, Generator, Mapping

import pytest

from shared.enums import Channel
from shared.notifications import NotificationRequest

from dispatcher.backoff import RetryPolicy
from dispatcher.engine import DispatchEngine
from dispatcher.senders import ChannelPayload, ChannelRegistry, ChannelSender, SendResult
from dispatcher.sinks import InMemoryResultSink, ResultSink


class ScriptedSender(ChannelSender):
    """Returns queued results in order, repeating the last one.

    Optionally blocks on *gate* and/or sleeps *delay* seconds per call,
    and tracks how many calls run at the same time.
    """

    def __init__(
        self,
        channel: Channel,
        *results: SendResult,
        delay: float = 0.0,
        gate: threading.Event | None = None,
    ) -> None:
        self.channel = channel
        self._results = list(results) or [SendResult.success(202)]
        self._delay = delay
        self._gate = gate
        self._lock = threading.Lock()
        self.calls: list[ChannelPayload] = []
        self.started = threading.Event()
        self.active = 0
        self.max_active = 0
        self.closed = False

    def send(self, payload: ChannelPayload) -> SendResult:
        with self._lock:
            index = len(self.calls)
            self.calls.append(payload)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            if self._gate is not None:
                self._gate.wait(5)
            if self._delay:
                time.sleep(self._delay)
            return self._results[min(index, len(self._results) - 1)]
        finally:
            with self._lock:
                self.active -= 1

    def close(self) -> None:
        self.closed = True


SenderFactory = Callable[..., ScriptedSender]
EngineFactory = Callable[..., DispatchEngine]


@pytest.fixture()
def make_sender() -> SenderFactory:
    def _make(channel: Channel = Channel.EMAIL, *results: SendResult, **kwargs: object) -> ScriptedSender:
        return ScriptedSender(channel, *results, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture()
def sink() -> InMemoryResultSink:
    return InMemoryResultSink()


@pytest.fixture()
def fast_policy() -> RetryPolicy:
    """Three attempts with no waiting between them."""
    return RetryPolicy(max_attempts=3, base_seconds=0.0, cap_seconds=0.0, jitter=0.0)


@pytest.fixture()
def make_engine(
    sink: InMemoryResultSink, fast_policy: RetryPolicy
) -> Generator[EngineFactory, None, None]:
    """Build engines over scripted senders; all are closed after the test."""
    engines: list[DispatchEngine] = []

    def _make(
        senders: Mapping[str, ChannelSender],
        *,
        max_concurrency: int = 4,
        policy: RetryPolicy | None = None,
        result_sink: ResultSink | None = None,
    ) -> DispatchEngine:
        engine = DispatchEngine(
            ChannelRegistry(senders),
            result_sink if result_sink is not None else sink,
            max_concurrency=max_concurrency,
            policy=policy or fast_policy,
        )
        engines.append(engine)
        return engine

    yield _make

    for engine in engines:
        engine.close(wait=True)


@pytest.fixture()
def make_request() -> Callable[..., NotificationRequest]:
    def _make(**overrides: object) -> NotificationRequest:
        fields: dict[str, object] = {
            "title": "Order shipped",
            "content": "Your order is on its way",
            "channel": "email",
            "recipient": "alice@example.com",
        }
        fields.update(overrides)
        return NotificationRequest(**fields)  # type: ignore[arg-type]

    return _make
