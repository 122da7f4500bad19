"""Tests for request sources and pump()."""

import io
import json
import logging
import threading

import pytest

from shared.enums import Channel, FinalState
from shared.notifications import NotificationRequest

from dispatcher.sources import IterableRequestSource, JsonLinesRequestSource, pump


class TestIterableRequestSource:
    def test_passes_requests_and_parses_mappings(self) -> None:
        ready = NotificationRequest(title="A", content="a", channel="sms", recipient="+15550100")
        raw = {"notification": {"id": "n-2", "title": "B", "content": "b", "channel": "push"}}

        requests = list(IterableRequestSource([ready, raw]))

        assert requests[0] is ready
        assert requests[1].id == "n-2"
        assert requests[1].channel == "push"

    def test_malformed_items_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        items = ["not a mapping", {"title": 42}, {"title": "ok", "content": "c"}]

        with caplog.at_level(logging.WARNING, logger="dispatcher.sources"):
            requests = list(IterableRequestSource(items))

        assert [r.title for r in requests] == ["ok"]
        assert [r.position for r in caplog.records] == [0, 1]


class TestJsonLinesRequestSource:
    def test_reads_one_request_per_line(self) -> None:
        stream = io.StringIO(
            json.dumps({"id": "1", "title": "t", "content": "c", "channel": "email"})
            + "\n\n"
            + json.dumps({"notification": {"id": "2", "title": "t", "content": "c"}})
            + "\n"
        )

        assert [r.id for r in JsonLinesRequestSource(stream)] == ["1", "2"]

    def test_bad_lines_skipped(self, caplog: pytest.LogCaptureFixture) -> None:
        stream = io.StringIO('{broken\n[1, 2]\n{"id": "3", "title": "t"}\n')

        with caplog.at_level(logging.WARNING, logger="dispatcher.sources"):
            requests = list(JsonLinesRequestSource(stream))

        assert [r.id for r in requests] == ["3"]
        assert [r.line for r in caplog.records] == [1, 2]


class TestPump:
    def test_submits_everything_async(self, make_engine, make_sender, make_request) -> None:
        sender = make_sender(Channel.EMAIL)
        engine = make_engine({"email": sender}, max_concurrency=2)
        source = IterableRequestSource([make_request(id=f"r-{n}") for n in range(5)])

        handles = pump(source, engine)

        assert [h.request_id for h in handles] == [f"r-{n}" for n in range(5)]
        assert all(h.result(timeout=2).final_state == FinalState.DELIVERED for h in handles)
        assert len(sender.calls) == 5

    def test_stop_ends_intake_before_next_request(self, make_engine, make_sender, make_request) -> None:
        sender = make_sender(Channel.EMAIL)
        engine = make_engine({"email": sender})
        stop = threading.Event()

        def _requests():
            yield make_request(id="r-0")
            stop.set()
            yield make_request(id="r-1")
            yield make_request(id="r-2")

        handles = pump(_requests(), engine, stop=stop)

        assert [h.request_id for h in handles] == ["r-0"]
        assert handles[0].cancel_requested()
        assert handles[0].result(timeout=2).final_state in (FinalState.DELIVERED, FinalState.REJECTED)

    def test_preset_stop_submits_nothing(self, make_engine, make_sender, make_request) -> None:
        sender = make_sender(Channel.EMAIL)
        engine = make_engine({"email": sender})
        stop = threading.Event()
        stop.set()

        assert pump([make_request(id="r-0")], engine, stop=stop) == []
        assert sender.calls == []
        assert not engine.is_in_flight("r-0")
