"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging.

Event Naming Convention:
    <component>.<category>.<action>

    component: mqtt, room, channel, error
    category: connected, publish, participant, zone
    action: success, failed, joined, destroyed

Example Log Query (Loki):
    {app="townsquare"} | json | event = "room.zone.destroyed"
"""

from enum import Enum


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - mqtt.*: MQTT broker interactions
    - channel.*: Per-participant event channel traffic
    - room.*: Room state changes relayed to subscribers
    - error.*: Error conditions
    """

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Channel Events ==========
    CHANNEL_CONNECTED = "channel.connected"
    """Participant event channel accepted."""

    CHANNEL_REJECTED = "channel.rejected"
    """Participant event channel refused (unknown room or session)."""

    CHANNEL_CLOSED = "channel.closed"
    """Participant event channel closed by the server."""

    INBOUND_RECEIVED = "channel.inbound.received"
    """Inbound participant event received by subscriber."""

    # ========== Room Events ==========
    ROOM_EVENT_SERIALIZED = "room.event.serialized"
    """Room event message serialized to JSON."""

    PARTICIPANT_JOINED = "room.participant.joined"
    PARTICIPANT_DISCONNECTED = "room.participant.disconnected"
    ZONE_UPDATED = "room.zone.updated"
    ZONE_DESTROYED = "room.zone.destroyed"
    ROOM_CLOSING = "room.closing"

    # ========== Error Events ==========
    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    SCHEMA_VALIDATION_ERROR = "error.schema_validation"
    """Message failed schema validation."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
MQTT_EVENTS = {
    LogEvent.MQTT_CONNECTED,
    LogEvent.MQTT_DISCONNECTED,
    LogEvent.MQTT_PUBLISH_SUCCESS,
    LogEvent.MQTT_PUBLISH_FAILED,
}

CHANNEL_EVENTS = {
    LogEvent.CHANNEL_CONNECTED,
    LogEvent.CHANNEL_REJECTED,
    LogEvent.CHANNEL_CLOSED,
    LogEvent.INBOUND_RECEIVED,
}

ROOM_EVENTS = {
    LogEvent.ROOM_EVENT_SERIALIZED,
    LogEvent.PARTICIPANT_JOINED,
    LogEvent.PARTICIPANT_DISCONNECTED,
    LogEvent.ZONE_UPDATED,
    LogEvent.ZONE_DESTROYED,
    LogEvent.ROOM_CLOSING,
}

ERROR_EVENTS = {
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.SCHEMA_VALIDATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}
