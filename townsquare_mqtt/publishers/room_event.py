"""
Room Event Publisher
===================

Bounded Context: Outbound room event production

Design:
- Inherits from BasePublisher (connection management)
- Formats RoomEventMessage to JSON
- Publishes to the session's events topic:
      townsquare/rooms/{room_id}/sessions/{session_token}/events

Message Flow:
    RoomController → ParticipantChannel → RoomEventPublisher → MQTT Broker

Example:
    >>> publisher = RoomEventPublisher(broker_host="localhost", logger=logger)
    >>> publisher.connect()
    >>> msg = RoomEventMessage.create(room_id, RoomEventType.ROOM_CLOSING)
    >>> publisher.publish_event(msg, session_token)
"""

from typing import Dict, Any, Optional

from .base import BasePublisher
from ..schemas import RoomEventMessage, events_topic
from ..logging import StructuredLogger, LogEvent


class RoomEventPublisher(BasePublisher):
    """Publisher for outbound room events, one topic per session."""

    def __init__(
        self,
        broker_host: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "townsquare_room_events",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )

    def format_message(self, message: RoomEventMessage) -> Dict[str, Any]:
        """Format RoomEventMessage for JSON serialization."""
        data = message.to_dict()
        self.logger.debug(
            event=LogEvent.ROOM_EVENT_SERIALIZED,
            message="Serialized room event",
            metadata={'room_id': message.room_id, 'event': message.event.value}
        )
        return data

    def publish_event(self, message: RoomEventMessage, session_token: str) -> bool:
        """
        Publish one event to a session's events topic.

        Returns:
            True if published successfully
        """
        topic = events_topic(message.room_id, session_token)
        return self.publish(self.format_message(message), topic=topic)
