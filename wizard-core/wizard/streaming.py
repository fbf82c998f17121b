"""Progress stream event types.

The install and uninstall endpoints answer with ``text/plain`` where every
line is one tagged JSON object:

    {"Status": ["Copying files", 0.42]}
    {"Error": "Disk full"}

Event Types:
    - StatusEvent: Progress message with a completion fraction
    - ErrorEvent: The operation failed; carries a user-visible message

The backend serializes ``Status`` as a ``[message, fraction]`` pair. The
keyed form ``{"message": ..., "fraction": ...}`` is accepted as well.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class EventType(str, Enum):
    """Tags recognized on the progress stream."""

    STATUS = "Status"
    ERROR = "Error"


@dataclass(slots=True)
class StreamEvent:
    """Base class for progress stream events."""

    @property
    def event_type(self) -> EventType:
        raise NotImplementedError

    def payload(self) -> Any:
        raise NotImplementedError

    def to_dict(self) -> dict[str, Any]:
        """Convert to the tagged wire representation."""
        return {self.event_type.value: self.payload()}

    def to_json(self) -> str:
        """Convert to a single stream line (without the terminator)."""
        return json.dumps(self.to_dict())


@dataclass(slots=True)
class StatusEvent(StreamEvent):
    """Progress update.

    Attributes:
        message: Human-readable description of the current step
        fraction: Completion in [0, 1]; not validated
    """

    message: str = ""
    fraction: float = 0.0

    @property
    def event_type(self) -> EventType:
        return EventType.STATUS

    def payload(self) -> Any:
        return [self.message, self.fraction]

    @property
    def percent(self) -> float:
        """Completion as a percentage, unclamped."""
        return self.fraction * 100


@dataclass(slots=True)
class ErrorEvent(StreamEvent):
    """The backend reported a failure.

    Attributes:
        message: Error text shown to the user
    """

    message: str = ""

    @property
    def event_type(self) -> EventType:
        return EventType.ERROR

    def payload(self) -> Any:
        return self.message


def _parse_status(value: Any) -> StatusEvent | None:
    if isinstance(value, list | tuple) and len(value) == 2:
        message, fraction = value
    elif isinstance(value, dict):
        message = value.get("message", "")
        fraction = value.get("fraction", 0.0)
    else:
        return None

    try:
        return StatusEvent(message=str(message), fraction=float(fraction))
    except (TypeError, ValueError):
        return None


def _parse_error(value: Any) -> ErrorEvent:
    if isinstance(value, dict):
        return ErrorEvent(message=str(value.get("message", "")))
    return ErrorEvent(message=str(value))


def parse_event(data: Any) -> StreamEvent | None:
    """Parse a decoded stream line into a StreamEvent.

    Args:
        data: The JSON value decoded from one line.

    Returns:
        StreamEvent, or None if the value carries no recognized tag.
    """
    if not isinstance(data, dict):
        return None

    if EventType.ERROR.value in data:
        return _parse_error(data[EventType.ERROR.value])

    if EventType.STATUS.value in data:
        event = _parse_status(data[EventType.STATUS.value])
        if event is None:
            logger.debug("malformed_status_event", data=data)
        return event

    return None
