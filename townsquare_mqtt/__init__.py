"""
Townsquare MQTT Communication Package
=====================================

Bounded Context: Transport for participant event channels

MQTT messaging between the room service and participant clients: each
session gets an inbound topic (client → service) and an events topic
(service → client).

Architecture:
- schemas/: Immutable message structures (RoomEventMessage, InboundMessage)
- publishers/: RoomEventPublisher (outbound)
- subscriber.py: InboundSubscriber (inbound)
- logging/: Structured JSON logging

Topics:
    townsquare/rooms/{room_id}/sessions/{session_token}/inbound
    townsquare/rooms/{room_id}/sessions/{session_token}/events

Example:
    >>> from townsquare_mqtt import RoomEventPublisher, create_logger
    >>> from townsquare_mqtt.schemas import RoomEventMessage, RoomEventType
    >>>
    >>> logger = create_logger("room_events")
    >>> publisher = RoomEventPublisher(broker_host="localhost", logger=logger)
    >>> publisher.connect()
    >>> publisher.publish_event(
    ...     RoomEventMessage.create("3fa2b1c0", RoomEventType.ROOM_CLOSING),
    ...     session_token,
    ... )
"""

__version__ = "1.0.0"

from .schemas import (
    SCHEMA_VERSION,
    Timestamp,
    RoomEventType,
    ParticipantSnapshot,
    ZoneSnapshot,
    RoomEventMessage,
    InboundType,
    InboundMessage,
)

from .publishers import (
    BasePublisher,
    RoomEventPublisher,
)

from .subscriber import InboundSubscriber

from .logging import (
    LogEvent,
    StructuredLogger,
    create_logger,
)

__all__ = [
    '__version__',
    # Schemas
    'SCHEMA_VERSION',
    'Timestamp',
    'RoomEventType',
    'ParticipantSnapshot',
    'ZoneSnapshot',
    'RoomEventMessage',
    'InboundType',
    'InboundMessage',
    # Publishers
    'BasePublisher',
    'RoomEventPublisher',
    # Subscriber
    'InboundSubscriber',
    # Logging
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
