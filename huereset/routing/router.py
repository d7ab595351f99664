"""Inbound message routing: topic classification and defensive payload parsing."""
import json
import logging
from typing import Any, Dict, Optional, Tuple

from huereset.core.patterns import LogLevel, StatusReporter
from huereset.models import ActionResponse, BridgeEvent
from .topics import BridgeTopics, MessageKind


def decode_payload(payload: Any) -> Tuple[Optional[Dict[str, Any]], str]:
    """
    Return `(parsed, text)` for a raw payload.

    `parsed` is None when the payload is not a JSON object; `text` is always
    a printable rendering of what arrived.
    """
    if isinstance(payload, (bytes, bytearray)):
        text = bytes(payload).decode("utf-8", errors="replace")
    else:
        text = str(payload)

    try:
        parsed = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None, text

    if not isinstance(parsed, dict):
        return None, text
    return parsed, text


class EventRouter:
    """Dispatches every inbound message to the orchestrator it concerns."""

    def __init__(self, topics: BridgeTopics, orchestrator, reporter: StatusReporter):
        self.topics = topics
        self.orchestrator = orchestrator
        self.reporter = reporter
        self.logger = logging.getLogger(self.__class__.__name__)

    def route(self, topic: str, payload: Any) -> MessageKind:
        kind = self.topics.classify(topic)
        parsed, text = decode_payload(payload)

        if parsed is None:
            self.reporter.log(f"Malformed payload on {topic}: {text}", LogLevel.WARNING)
            return kind

        if kind is MessageKind.ACTION_RESPONSE:
            self.reporter.log(f"Response on {topic}: {json.dumps(parsed)}", LogLevel.OK)
            self.orchestrator.handle_action_response(ActionResponse.from_payload(parsed))
        elif kind is MessageKind.JOIN_WINDOW_RESPONSE:
            self._handle_join_window_response(topic, parsed)
        elif kind is MessageKind.BRIDGE_EVENT:
            self.reporter.log(f"Event on {topic}: {json.dumps(parsed)}", LogLevel.DEBUG)
            self.orchestrator.handle_bridge_event(BridgeEvent.from_payload(parsed))
        else:
            self.logger.debug(f"Ignoring message on {topic}")

        return kind

    def _handle_join_window_response(self, topic: str, parsed: Dict[str, Any]):
        response = ActionResponse.from_payload(parsed)
        if response.ok:
            self.reporter.log(f"Response on {topic}: {json.dumps(parsed)}", LogLevel.OK)
        else:
            self.reporter.log(
                f"Bridge refused the join window: {response.error or response.status}",
                LogLevel.WARNING,
            )
