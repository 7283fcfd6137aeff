"""
Townsquare MQTT Schemas
=======================

Bounded Context: Data Structures

Immutable, typed data structures for MQTT messages.

Design:
- Frozen dataclasses (immutability)
- to_dict() for JSON serialization, from_dict() for deserialization
- Schema versioning for evolution

Public API
----------
Common Types:
    Timestamp, SCHEMA_VERSION

Room Event Types (outbound):
    RoomEventType, ParticipantSnapshot, ZoneSnapshot, RoomEventMessage

Inbound Types:
    InboundType, InboundMessage
    inbound_topic(), events_topic(), parse_session_topic()
"""

from .common import SCHEMA_VERSION, Timestamp
from .room_event import (
    RoomEventType,
    ParticipantSnapshot,
    ZoneSnapshot,
    RoomEventMessage,
)
from .inbound import (
    INBOUND_TOPIC_FILTER,
    InboundType,
    InboundMessage,
    inbound_topic,
    events_topic,
    parse_session_topic,
)

__all__ = [
    # Common types
    'SCHEMA_VERSION',
    'Timestamp',
    # Room event types
    'RoomEventType',
    'ParticipantSnapshot',
    'ZoneSnapshot',
    'RoomEventMessage',
    # Inbound types
    'INBOUND_TOPIC_FILTER',
    'InboundType',
    'InboundMessage',
    'inbound_topic',
    'events_topic',
    'parse_session_topic',
]
