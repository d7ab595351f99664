from dataclasses import dataclass
from enum import Enum
from typing import List

ACTION_REQUEST = "bridge/request/action"
PERMIT_JOIN_REQUEST = "bridge/request/permit_join"
ACTION_RESPONSE = "bridge/response/action"
PERMIT_JOIN_RESPONSE = "bridge/response/permit_join"
BRIDGE_EVENT = "bridge/event"


class MessageKind(Enum):
    ACTION_RESPONSE = "action_response"
    JOIN_WINDOW_RESPONSE = "join_window_response"
    BRIDGE_EVENT = "bridge_event"
    OTHER = "other"


_SUFFIX_KINDS = {
    ACTION_RESPONSE: MessageKind.ACTION_RESPONSE,
    PERMIT_JOIN_RESPONSE: MessageKind.JOIN_WINDOW_RESPONSE,
    BRIDGE_EVENT: MessageKind.BRIDGE_EVENT,
}


@dataclass(frozen=True)
class BridgeTopics:
    """Topic layout of a Zigbee2MQTT bridge under a base topic."""
    base: str = "zigbee2mqtt"

    def _topic(self, suffix: str) -> str:
        return f"{self.base.rstrip('/')}/{suffix}"

    @property
    def action_request(self) -> str:
        return self._topic(ACTION_REQUEST)

    @property
    def permit_join_request(self) -> str:
        return self._topic(PERMIT_JOIN_REQUEST)

    @property
    def action_response(self) -> str:
        return self._topic(ACTION_RESPONSE)

    @property
    def permit_join_response(self) -> str:
        return self._topic(PERMIT_JOIN_RESPONSE)

    @property
    def event(self) -> str:
        return self._topic(BRIDGE_EVENT)

    def subscriptions(self) -> List[str]:
        return [self.action_response, self.permit_join_response, self.event]

    def classify(self, topic: str) -> MessageKind:
        """Classify by suffix below this base topic; anything else is OTHER."""
        prefix = f"{self.base.rstrip('/')}/"
        if not topic or not topic.startswith(prefix):
            return MessageKind.OTHER
        return _SUFFIX_KINDS.get(topic[len(prefix):], MessageKind.OTHER)
