"""
Inbound Participant Message Schema
==================================

Bounded Context: Events a participant's client sends to the room service

Topic layout:
    townsquare/rooms/{room_id}/sessions/{session_token}/inbound

The room id and session token come from the topic, the payload carries only
the event type and (for moves) the new location.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from townsquare_room import Location

INBOUND_TOPIC_FILTER = "townsquare/rooms/+/sessions/+/inbound"


class InboundType(str, Enum):
    """Inbound event types."""
    CONNECT = "connect"
    MOVE = "move"
    DISCONNECT = "disconnect"


def inbound_topic(room_id: str, session_token: str) -> str:
    return f"townsquare/rooms/{room_id}/sessions/{session_token}/inbound"


def events_topic(room_id: str, session_token: str) -> str:
    return f"townsquare/rooms/{room_id}/sessions/{session_token}/events"


def parse_session_topic(topic: str) -> Tuple[str, str]:
    """
    Extract (room_id, session_token) from a session topic.

    Raises:
        ValueError: If the topic does not follow the session layout
    """
    parts = topic.split('/')
    if (
        len(parts) != 6
        or parts[0] != 'townsquare'
        or parts[1] != 'rooms'
        or parts[3] != 'sessions'
        or not parts[2]
        or not parts[4]
    ):
        raise ValueError(f"Not a session topic: {topic}")
    return parts[2], parts[4]


@dataclass(frozen=True)
class InboundMessage:
    """
    One inbound participant event.

    Attributes:
        room_id: Target room (from topic)
        session_token: Sender's session (from topic)
        type: connect, move or disconnect
        location: New location (move only)
    """
    room_id: str
    session_token: str
    type: InboundType
    location: Optional[Location] = None

    def __post_init__(self):
        if self.type is InboundType.MOVE and self.location is None:
            raise ValueError("move message requires a location")

    @classmethod
    def from_mqtt(cls, topic: str, data: Dict[str, Any]) -> 'InboundMessage':
        """
        Build from topic + decoded JSON payload.

        Raises:
            ValueError: If topic, type or location are invalid
        """
        room_id, session_token = parse_session_topic(topic)
        try:
            message_type = InboundType(data['type'])
        except KeyError:
            raise ValueError("Missing required field: 'type'")

        location_data = data.get('location')
        return cls(
            room_id=room_id,
            session_token=session_token,
            type=message_type,
            location=Location.from_dict(location_data) if location_data is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {'type': self.type.value}
        if self.location is not None:
            data['location'] = self.location.to_dict()
        return data
