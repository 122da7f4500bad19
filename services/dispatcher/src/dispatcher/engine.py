"""Dispatch engine: bounded concurrency, per-request retry, terminal outcomes.

Each accepted request holds one slot from a shared pool for its whole
lifetime, including the waits between retries.  Attempts for one request
run sequentially on the thread that holds its slot.  Callers are
throttled when every slot is taken: ``submit`` and ``submit_async`` both
block in the caller's thread until a slot frees.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone

from shared.enums import AttemptOutcome, Channel, ErrorKind
from shared.notifications import NotificationRequest

from dispatcher.backoff import RetryPolicy
from dispatcher.errors import EngineClosedError, UnknownChannelError
from dispatcher.outcomes import DeliveryAttempt, DispatchOutcome
from dispatcher.senders import ChannelPayload, ChannelRegistry, ChannelSender, SendResult
from dispatcher.sinks import LoggingResultSink, ResultSink

logger = logging.getLogger(__name__)

# How often a cancellable slot wait re-checks its cancel event.
_CANCEL_POLL_SECONDS = 0.05


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_request(request: NotificationRequest) -> str | None:
    """Return why *request* cannot be dispatched, or None if it can."""
    if not request.title.strip():
        return "title must not be empty"
    if not request.content.strip():
        return "content must not be empty"
    if not request.channel.strip():
        return "channel is required"
    if request.recipient is None or not request.recipient.strip():
        return "recipient is required"
    return None


class SlotPool:
    """Counting pool of dispatch slots with cancellable waits."""

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._in_use = 0
        self._cond = threading.Condition()

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        with self._cond:
            return self._in_use

    def acquire(self, cancel: threading.Event | None = None) -> bool:
        """Block until a slot is free and take it.

        Returns False without taking a slot if *cancel* is set first.
        """
        with self._cond:
            while self._in_use >= self._capacity:
                if cancel is not None and cancel.is_set():
                    return False
                self._cond.wait(_CANCEL_POLL_SECONDS if cancel is not None else None)
            if cancel is not None and cancel.is_set():
                return False
            self._in_use += 1
            return True

    def release(self) -> None:
        with self._cond:
            if self._in_use == 0:
                raise RuntimeError("SlotPool.release() called without a held slot")
            self._in_use -= 1
            self._cond.notify_all()


class DispatchHandle:
    """Caller's view of an asynchronous submission."""

    def __init__(
        self,
        request_id: str,
        future: "Future[DispatchOutcome]",
        cancel_event: threading.Event,
    ) -> None:
        self._request_id = request_id
        self._future = future
        self._cancel = cancel_event

    @classmethod
    def completed(cls, outcome: DispatchOutcome) -> "DispatchHandle":
        future: Future[DispatchOutcome] = Future()
        future.set_result(outcome)
        return cls(outcome.request_id, future, threading.Event())

    @property
    def request_id(self) -> str:
        return self._request_id

    def cancel(self) -> bool:
        """Ask the dispatch to stop retrying.

        An attempt already talking to a provider runs to completion and
        is recorded.  Returns False when the dispatch had already finished.
        """
        if self._future.done():
            return False
        self._cancel.set()
        return True

    def cancel_requested(self) -> bool:
        """True once cancellation was asked for, whatever the outcome."""
        return self._cancel.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: float | None = None) -> DispatchOutcome:
        return self._future.result(timeout)

    def add_done_callback(self, fn: Callable[[DispatchOutcome], None]) -> None:
        self._future.add_done_callback(lambda f: fn(f.result()))


class DispatchEngine:
    """Resolves, throttles, retries and reports notification dispatches.

    The engine takes ownership of *registry* and *sink*: ``close()``
    closes both after the worker threads have drained.
    """

    def __init__(
        self,
        registry: ChannelRegistry,
        sink: ResultSink | None = None,
        *,
        max_concurrency: int = 10,
        policy: RetryPolicy | None = None,
    ) -> None:
        self._registry = registry
        self._sink = sink if sink is not None else LoggingResultSink()
        self._policy = policy or RetryPolicy()
        self._slots = SlotPool(max_concurrency)
        self._executor = ThreadPoolExecutor(
            max_workers=max_concurrency, thread_name_prefix="dispatch"
        )
        self._lock = threading.Lock()
        self._drained = threading.Condition(self._lock)
        self._in_flight: set[str] = set()
        self._active = 0
        self._closed = False

    @property
    def max_concurrency(self) -> int:
        return self._slots.capacity

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    @property
    def slots_in_use(self) -> int:
        return self._slots.in_use

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._in_flight)

    def is_in_flight(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._in_flight

    def submit(
        self,
        request: NotificationRequest,
        cancel: threading.Event | None = None,
    ) -> DispatchOutcome:
        """Dispatch *request* and block until it reaches a terminal state.

        Setting *cancel* from another thread stops the dispatch at the
        next slot wait or backoff.  Domain failures are reported in the
        returned outcome, never raised.
        """
        self._enter()
        try:
            if cancel is None:
                cancel = threading.Event()

            admitted = self._admit_and_acquire(request, cancel)
            if isinstance(admitted, DispatchOutcome):
                return admitted
            channel, sender = admitted

            return self._run_holding_slot(request, channel, sender, cancel)
        finally:
            self._leave()

    def submit_async(
        self,
        request: NotificationRequest,
        cancel: threading.Event | None = None,
    ) -> DispatchHandle:
        """Admit *request*, wait for a slot, and run it on a worker thread.

        Admission failures and a *cancel* set while waiting for the slot
        come back as an already-completed handle.  One *cancel* event may
        be shared by several submissions to stop them together.
        """
        self._enter()
        try:
            if cancel is None:
                cancel = threading.Event()

            admitted = self._admit_and_acquire(request, cancel)
            if isinstance(admitted, DispatchOutcome):
                self._leave()
                return DispatchHandle.completed(admitted)
            channel, sender = admitted

            try:
                future = self._executor.submit(
                    self._run_async, request, channel, sender, cancel
                )
            except RuntimeError as exc:
                self._slots.release()
                self._release_id(request.id)
                raise EngineClosedError("Dispatch engine is closed") from exc
        except BaseException:
            # Only reached before the worker owns the submission.
            self._leave()
            raise

        return DispatchHandle(request.id, future, cancel)

    def close(self, wait: bool = True) -> None:
        """Stop accepting work, drain dispatches, close registry and sink.

        With *wait*, blocks until every running dispatch, synchronous or
        not, has been finalized.
        """
        with self._drained:
            if self._closed:
                return
            self._closed = True
            if wait:
                while self._active:
                    self._drained.wait()
        self._executor.shutdown(wait=wait)
        self._registry.close()
        self._sink.close()
        logger.info("Dispatch engine closed")

    def __enter__(self) -> "DispatchEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- internals -------------------------------------------------------

    def _enter(self) -> None:
        with self._lock:
            if self._closed:
                raise EngineClosedError("Dispatch engine is closed")
            self._active += 1

    def _leave(self) -> None:
        with self._drained:
            self._active -= 1
            if self._active == 0:
                self._drained.notify_all()

    def _admit_and_acquire(
        self, request: NotificationRequest, cancel: threading.Event
    ) -> tuple[Channel, ChannelSender] | DispatchOutcome:
        admitted = self._admit(request)
        if isinstance(admitted, DispatchOutcome):
            return admitted
        channel, _sender = admitted

        try:
            acquired = self._slots.acquire(cancel)
        except BaseException:
            self._release_id(request.id)
            raise

        if not acquired:
            outcome = DispatchOutcome.rejected(
                request.id,
                ErrorKind.CANCELLED,
                "Cancelled while waiting for a dispatch slot",
                channel=channel,
            )
            self._finalize(outcome)
            self._release_id(request.id)
            return outcome

        return admitted

    def _admit(
        self, request: NotificationRequest
    ) -> tuple[Channel, ChannelSender] | DispatchOutcome:
        """Validate, resolve and claim the request id.

        Returns the channel and sender on success; otherwise a rejected
        outcome, finalized to the sink unless it is a duplicate.
        """
        log_ctx = {"request_id": request.id, "channel": request.channel}

        problem = validate_request(request)
        if problem is not None:
            logger.warning("Request rejected", extra={**log_ctx, "reason": problem})
            return self._reject(request.id, ErrorKind.VALIDATION_ERROR, problem)

        try:
            channel = self._registry.channel_for(request.channel)
            sender = self._registry.resolve(channel)
        except UnknownChannelError as exc:
            logger.warning("Unknown channel", extra=log_ctx)
            return self._reject(request.id, ErrorKind.UNKNOWN_CHANNEL, str(exc))

        with self._lock:
            duplicate = request.id in self._in_flight
            if not duplicate:
                self._in_flight.add(request.id)

        if duplicate:
            # Logged only; the id's outcome belongs to the running dispatch.
            logger.warning("Duplicate in-flight request", extra=log_ctx)
            return DispatchOutcome.rejected(
                request.id,
                ErrorKind.DUPLICATE_IN_FLIGHT,
                "A dispatch for this request id is already in flight",
                channel=channel,
            )

        return channel, sender

    def _reject(
        self,
        request_id: str,
        error: ErrorKind,
        reason: str,
    ) -> DispatchOutcome:
        outcome = DispatchOutcome.rejected(request_id, error, reason)
        self._finalize(outcome)
        return outcome

    def _run_holding_slot(
        self,
        request: NotificationRequest,
        channel: Channel,
        sender: ChannelSender,
        cancel: threading.Event,
    ) -> DispatchOutcome:
        try:
            try:
                outcome = self._attempt_loop(request, channel, sender, cancel)
            finally:
                self._slots.release()
            self._finalize(outcome)
            return outcome
        finally:
            self._release_id(request.id)

    def _run_async(
        self,
        request: NotificationRequest,
        channel: Channel,
        sender: ChannelSender,
        cancel: threading.Event,
    ) -> DispatchOutcome:
        try:
            return self._run_holding_slot(request, channel, sender, cancel)
        finally:
            self._leave()

    def _attempt_loop(
        self,
        request: NotificationRequest,
        channel: Channel,
        sender: ChannelSender,
        cancel: threading.Event,
    ) -> DispatchOutcome:
        log_ctx = {"request_id": request.id, "channel": channel}

        if cancel.is_set():
            return DispatchOutcome.rejected(
                request.id,
                ErrorKind.CANCELLED,
                "Cancelled before the first attempt",
                channel=channel,
            )

        payload = ChannelPayload.from_request(request)
        attempts: list[DeliveryAttempt] = []
        max_attempts = self._policy.max_attempts

        for number in range(1, max_attempts + 1):
            attempt = self._attempt(sender, payload, number, log_ctx)
            attempts.append(attempt)
            self._record(request.id, attempt)

            if attempt.outcome == AttemptOutcome.SUCCESS:
                logger.info(
                    "Delivery succeeded",
                    extra={
                        **log_ctx,
                        "attempt": number,
                        "provider_status": attempt.provider_status,
                    },
                )
                return DispatchOutcome.delivered(
                    request.id, tuple(attempts), channel=channel
                )

            if attempt.outcome == AttemptOutcome.PERMANENT_FAILURE:
                logger.error(
                    "Delivery permanently failed",
                    extra={**log_ctx, "attempt": number, "reason": attempt.reason},
                )
                return DispatchOutcome.failed(
                    request.id,
                    tuple(attempts),
                    ErrorKind.PERMANENT_FAILURE,
                    attempt.reason,
                    channel=channel,
                )

            if number == max_attempts:
                break

            delay = self._policy.delay(number)
            logger.warning(
                "Delivery failed, scheduling retry",
                extra={
                    **log_ctx,
                    "attempt": number,
                    "backoff_seconds": delay,
                    "reason": attempt.reason,
                },
            )
            if cancel.wait(delay):
                logger.info(
                    "Dispatch cancelled, no further retries",
                    extra={**log_ctx, "attempt": number},
                )
                return DispatchOutcome.failed(
                    request.id,
                    tuple(attempts),
                    ErrorKind.CANCELLED,
                    f"Cancelled after {number} attempt(s); last: {attempt.reason}",
                    channel=channel,
                )

        last = attempts[-1]
        error = ErrorKind.TIMEOUT if last.timed_out else ErrorKind.TRANSIENT_FAILURE
        logger.error(
            "Delivery failed after exhausting retries",
            extra={**log_ctx, "attempts": len(attempts), "reason": last.reason},
        )
        return DispatchOutcome.failed(
            request.id, tuple(attempts), error, last.reason, channel=channel
        )

    @staticmethod
    def _attempt(
        sender: ChannelSender,
        payload: ChannelPayload,
        number: int,
        log_ctx: dict[str, object],
    ) -> DeliveryAttempt:
        started_at = _utcnow()
        try:
            result = sender.send(payload)
        except Exception as exc:
            logger.exception("Sender raised", extra={**log_ctx, "attempt": number})
            result = SendResult.transient(f"Sender error: {exc!r}")

        return DeliveryAttempt(
            attempt_number=number,
            started_at=started_at,
            finished_at=_utcnow(),
            outcome=result.outcome,
            provider_status=result.provider_status,
            reason=result.reason,
            timed_out=result.timed_out,
        )

    def _record(self, request_id: str, attempt: DeliveryAttempt) -> None:
        try:
            self._sink.record(request_id, attempt)
        except Exception:
            logger.exception(
                "Result sink failed to record attempt",
                extra={"request_id": request_id, "attempt": attempt.attempt_number},
            )

    def _finalize(self, outcome: DispatchOutcome) -> None:
        try:
            self._sink.finalize(outcome)
        except Exception:
            logger.exception(
                "Result sink failed to finalize outcome",
                extra={"request_id": outcome.request_id},
            )

    def _release_id(self, request_id: str) -> None:
        with self._lock:
            self._in_flight.discard(request_id)
