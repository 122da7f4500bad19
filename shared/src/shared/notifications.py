"""Inbound notification dispatch request model and parser."""

from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator


class NotificationRequest(BaseModel):
    """One notification to deliver over a single channel.

    Field-level emptiness is not enforced here: a request
    with a blank title can still be built and submitted, and the
    dispatch engine turns it into a rejected outcome with a reason.
    ``channel`` is kept as the caller supplied it; the channel registry
    normalizes it at resolution time.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = ""
    content: str = ""
    channel: str = ""
    recipient: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (UUID, int)) and not isinstance(value, bool):
            return str(value)
        return value


def parse_request(raw: Any) -> NotificationRequest:
    """Build a NotificationRequest from an inbound mapping.

    Accepts either the bare object or one wrapped as
    ``{"notification": {...}}``.  Raises ValueError when *raw* is not a
    mapping or a field has the wrong type (pydantic's ValidationError is
    a ValueError subclass).
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Request must be a JSON object, got {type(raw).__name__}")

    body = raw.get("notification", raw)
    if not isinstance(body, dict):
        raise ValueError("'notification' must be a JSON object")

    return NotificationRequest.model_validate(body)
