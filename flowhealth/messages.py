"""Message vocabulary shared by the extractor, coordinator and summary view.

The type strings and payload keys are the wire contract between contexts.
Each message type declares whether it expects exactly one response or none;
Port enforces that declaration on both ends.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from flowhealth.errors import MessageDeliveryError


class MessageType(str, Enum):
    METRICS_EXTRACTED = "METRICS_EXTRACTED"
    METRICS_EXTRACTION_FAILED = "METRICS_EXTRACTION_FAILED"
    GET_METRICS = "GET_METRICS"
    ANALYZE_TAB = "ANALYZE_TAB"
    EXTRACT_METRICS = "EXTRACT_METRICS"
    OPEN_POPUP = "OPEN_POPUP"

    @property
    def expects_response(self) -> bool:
        return self in _REQUEST_TYPES


_REQUEST_TYPES = frozenset({
    MessageType.GET_METRICS,
    MessageType.ANALYZE_TAB,
    MessageType.EXTRACT_METRICS,
})


@dataclass(frozen=True)
class Message:
    type: MessageType
    payload: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"type": self.type.value, **self.payload}

    @classmethod
    def from_dict(cls, data: dict) -> Message:
        if not isinstance(data, dict) or "type" not in data:
            raise ValueError("message must be a dict with a 'type' key")
        payload = {k: v for k, v in data.items() if k != "type"}
        return cls(type=MessageType(data["type"]), payload=payload)


def metrics_extracted(metrics: dict) -> Message:
    return Message(MessageType.METRICS_EXTRACTED, {"metrics": metrics})


def metrics_extraction_failed(platform: str | None, source_url: str | None) -> Message:
    return Message(MessageType.METRICS_EXTRACTION_FAILED, {"platform": platform, "sourceUrl": source_url})


def get_metrics() -> Message:
    return Message(MessageType.GET_METRICS)


def analyze_tab() -> Message:
    return Message(MessageType.ANALYZE_TAB)


def extract_metrics() -> Message:
    return Message(MessageType.EXTRACT_METRICS)


def open_popup(metrics: dict) -> Message:
    return Message(MessageType.OPEN_POPUP, {"metrics": metrics})


def structured_copy(data: Any) -> Any:
    """Copy a payload the way a context boundary does: through JSON."""
    return json.loads(json.dumps(data))


@dataclass
class Sender:
    """Who a message came from, as seen by the receiving context."""

    context_id: str | None = None
    url: str | None = None


NotificationHandler = Callable[[Message, Sender], None]
RequestHandler = Callable[[Message, Sender], Awaitable[dict]]


class Port:
    """One-way link from a context to a receiving context.

    Messages are copied through JSON on the way in and responses on the way
    out, so neither side ever shares a mutable object with the other.
    """

    def __init__(
        self,
        on_notify: NotificationHandler,
        on_request: RequestHandler,
        sender: Callable[[], Sender] | None = None,
    ):
        self._on_notify = on_notify
        self._on_request = on_request
        self._sender = sender or Sender
        self.closed = False

    @property
    def sender(self) -> Sender:
        return self._sender()

    def close(self) -> None:
        self.closed = True

    def _deliverable(self, message: Message) -> Message:
        if self.closed:
            raise MessageDeliveryError(f"receiving context for {message.type.value} is gone")
        return Message.from_dict(structured_copy(message.to_dict()))

    def send(self, message: Message) -> None:
        """Fire-and-forget delivery for notification types."""
        if message.type.expects_response:
            raise ValueError(f"{message.type.value} expects a response; use request()")
        self._on_notify(self._deliverable(message), self.sender)

    async def request(self, message: Message) -> dict:
        """Deliver a request and wait for its single response."""
        if not message.type.expects_response:
            raise ValueError(f"{message.type.value} is a notification; use send()")
        response = await self._on_request(self._deliverable(message), self.sender)
        return structured_copy(response)
