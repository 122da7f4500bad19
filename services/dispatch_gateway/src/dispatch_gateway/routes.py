import logging
from typing import Any

from flask import Blueprint, Response, current_app, jsonify, request
from pydantic import ValidationError

from shared.enums import ErrorKind, FinalState
from shared.notifications import parse_request

from dispatcher.engine import DispatchEngine

logger = logging.getLogger(__name__)

bp = Blueprint("dispatch", __name__)

_STATUS_BY_STATE = {
    FinalState.DELIVERED: 200,
    FinalState.FAILED: 502,
    FinalState.REJECTED: 422,
}


def _error(message: str, status: int, **extra: Any) -> tuple[Response, int]:
    body: dict[str, Any] = {"error": message}
    body.update(extra)
    return jsonify(body), status


def _engine() -> DispatchEngine:
    return current_app.extensions["dispatch_engine"]


@bp.post("/dispatch")
def post_dispatch() -> tuple[Response, int]:
    body = request.get_json(silent=True)
    if body is None:
        return _error("Request body must be valid JSON", 400)

    if not isinstance(body, dict) or "notification" not in body:
        return _error("A 'notification' object is required", 400)

    try:
        notification = parse_request(body)
    except ValidationError as exc:
        return _error(
            "Payload validation failed",
            400,
            details=exc.errors(include_url=False, include_context=False),
        )
    except ValueError as exc:
        return _error(str(exc), 400)

    outcome = _engine().submit(notification)

    if outcome.error == ErrorKind.DUPLICATE_IN_FLIGHT:
        status = 409
    else:
        status = _STATUS_BY_STATE[outcome.final_state]

    logger.info(
        "Dispatch request handled",
        extra={
            "request_id": outcome.request_id,
            "status": outcome.final_state,
            "http_status": status,
            "attempts": outcome.attempt_count,
        },
    )
    return jsonify(outcome.to_dict()), status


@bp.get("/health")
def health() -> tuple[Response, int]:
    engine = _engine()
    return jsonify({
        "status": "healthy",
        "engine": {
            "in_flight": engine.in_flight,
            "slots_in_use": engine.slots_in_use,
            "max_concurrency": engine.max_concurrency,
        },
    }), 200
