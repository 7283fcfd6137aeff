"""
Room Event Message Schema
=========================

Bounded Context: Outbound events delivered to each participant channel

Design:
- RoomEventType: wire names of outbound events
- ParticipantSnapshot / ZoneSnapshot: immutable copies of entity state at
  the moment the event fired (entities keep mutating afterwards)
- RoomEventMessage: the complete message

Message Flow:
    RoomController → RoomListener → ParticipantChannel → RoomEventPublisher → MQTT
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from townsquare_room import ConversationZone, Participant

from .common import SCHEMA_VERSION, Timestamp


class RoomEventType(str, Enum):
    """Outbound event names as they appear on the wire."""
    NEW_PARTICIPANT = "newParticipant"
    PARTICIPANT_MOVED = "participantMoved"
    PARTICIPANT_DISCONNECT = "participantDisconnect"
    ZONE_UPDATED = "zoneUpdated"
    ZONE_DESTROYED = "zoneDestroyed"
    ROOM_CLOSING = "roomClosing"
    DISCONNECT = "disconnect"  # server-forced channel close


@dataclass(frozen=True)
class ParticipantSnapshot:
    """
    Participant state carried by an event.

    Attributes:
        participant_id: Unique identifier
        user_name: Display label
        location: Location dict (x, y, rotation, moving, zone_label)
        zone_label: Zone currently occupied (None if none)
    """
    participant_id: str
    user_name: str
    location: Dict[str, Any]
    zone_label: Optional[str] = None

    @classmethod
    def from_participant(cls, participant: Participant) -> 'ParticipantSnapshot':
        return cls(
            participant_id=participant.participant_id,
            user_name=participant.user_name,
            location=participant.location.to_dict(),
            zone_label=participant.zone_label,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'participant_id': self.participant_id,
            'user_name': self.user_name,
            'location': dict(self.location),
            'zone_label': self.zone_label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ParticipantSnapshot':
        """
        Raises:
            ValueError: If required keys missing
        """
        try:
            return cls(
                participant_id=data['participant_id'],
                user_name=data['user_name'],
                location=dict(data['location']),
                zone_label=data.get('zone_label'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required participant field: {e}")


@dataclass(frozen=True)
class ZoneSnapshot:
    """
    Zone state carried by an event.

    Attributes:
        label: Zone label
        topic: Conversation topic
        bounding_box: {x, y, height, width}
        occupant_ids: Occupants in arrival order
    """
    label: str
    topic: str
    bounding_box: Dict[str, float]
    occupant_ids: Tuple[str, ...] = ()

    @classmethod
    def from_zone(cls, zone: ConversationZone) -> 'ZoneSnapshot':
        return cls(
            label=zone.label,
            topic=zone.topic,
            bounding_box=zone.bounding_box.to_dict(),
            occupant_ids=zone.occupant_ids,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'topic': self.topic,
            'bounding_box': dict(self.bounding_box),
            'occupant_ids': list(self.occupant_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZoneSnapshot':
        """
        Raises:
            ValueError: If required keys missing
        """
        try:
            return cls(
                label=data['label'],
                topic=data['topic'],
                bounding_box=dict(data['bounding_box']),
                occupant_ids=tuple(data.get('occupant_ids', [])),
            )
        except KeyError as e:
            raise ValueError(f"Missing required zone field: {e}")


@dataclass(frozen=True)
class RoomEventMessage:
    """
    One outbound event for one participant channel.

    Invariants:
        - participant events carry `participant`
        - zone events carry `zone`
        - roomClosing / disconnect carry neither

    Example:
        >>> msg = RoomEventMessage.create(
        ...     room_id="3fa2b1c0",
        ...     event=RoomEventType.PARTICIPANT_MOVED,
        ...     participant=ParticipantSnapshot.from_participant(p),
        ... )
        >>> msg.to_dict()['event']
        'participantMoved'
    """
    schema_version: str
    timestamp: Timestamp
    room_id: str
    event: RoomEventType
    participant: Optional[ParticipantSnapshot] = None
    zone: Optional[ZoneSnapshot] = None

    def __post_init__(self):
        """Validate payload matches event type."""
        if self.event in PARTICIPANT_EVENT_TYPES and self.participant is None:
            raise ValueError(f"{self.event.value} requires a participant payload")
        if self.event in ZONE_EVENT_TYPES and self.zone is None:
            raise ValueError(f"{self.event.value} requires a zone payload")

    @classmethod
    def create(
        cls,
        room_id: str,
        event: RoomEventType,
        participant: Optional[ParticipantSnapshot] = None,
        zone: Optional[ZoneSnapshot] = None,
    ) -> 'RoomEventMessage':
        """Build a message stamped with the current schema version and time."""
        return cls(
            schema_version=SCHEMA_VERSION,
            timestamp=Timestamp.now(),
            room_id=room_id,
            event=event,
            participant=participant,
            zone=zone,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'room_id': self.room_id,
            'event': self.event.value,
        }
        if self.participant is not None:
            data['participant'] = self.participant.to_dict()
        if self.zone is not None:
            data['zone'] = self.zone.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RoomEventMessage':
        """
        Raises:
            ValueError: If required keys missing or unknown event type
        """
        try:
            participant_data = data.get('participant')
            zone_data = data.get('zone')
            return cls(
                schema_version=data['schema_version'],
                timestamp=Timestamp(value=data['timestamp']),
                room_id=data['room_id'],
                event=RoomEventType(data['event']),
                participant=(
                    ParticipantSnapshot.from_dict(participant_data)
                    if participant_data is not None else None
                ),
                zone=ZoneSnapshot.from_dict(zone_data) if zone_data is not None else None,
            )
        except KeyError as e:
            raise ValueError(f"Missing required field: {e}")


PARTICIPANT_EVENT_TYPES = {
    RoomEventType.NEW_PARTICIPANT,
    RoomEventType.PARTICIPANT_MOVED,
    RoomEventType.PARTICIPANT_DISCONNECT,
}

ZONE_EVENT_TYPES = {
    RoomEventType.ZONE_UPDATED,
    RoomEventType.ZONE_DESTROYED,
}
