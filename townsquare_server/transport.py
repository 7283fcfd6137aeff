"""
Transport Adapter
=================

Bounded Context: Bridging participant event channels and room controllers.

Design:
- ParticipantChannel: the abstract bidirectional channel of one connected
  participant (emit outbound events, register inbound handlers, force
  disconnect)
- MQTTParticipantChannel: ParticipantChannel over the per-session MQTT
  topics (outbound via RoomEventPublisher, inbound dispatched by RoomService)
- ChannelListener: RoomListener that turns controller callbacks into
  outbound channel events
- RoomSubscriptionHandler: authenticates a connecting channel against the
  directory and wires it to its room

Flow:
    connect(room_id, session_token)
        ├── unknown room / session → channel.disconnect(True)
        └── known → add ChannelListener, wire "move" and "disconnect"

    roomClosing → emit, then channel.disconnect(True), listener removed

A server-initiated disconnect does not run the channel's own "disconnect"
handlers; those fire only for client-initiated disconnects.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Protocol

from townsquare_room import ConversationZone, Location, Participant, RoomController, Session
from townsquare_mqtt import (
    LogEvent,
    ParticipantSnapshot,
    RoomEventMessage,
    RoomEventPublisher,
    RoomEventType,
    StructuredLogger,
    ZoneSnapshot,
)

from townsquare_server.directory import RoomDirectory

logger = logging.getLogger(__name__)

MOVE = "move"
DISCONNECT = "disconnect"


class ParticipantChannel(Protocol):
    """Bidirectional event channel of one connected participant."""

    def emit(self, event: RoomEventType, payload: Any = None) -> None:
        ...

    def on(self, event: str, handler: Callable[..., None]) -> None:
        ...

    def disconnect(self, close: bool = True) -> None:
        ...


class MQTTParticipantChannel:
    """
    ParticipantChannel over MQTT.

    Outbound events go to townsquare/rooms/{room_id}/sessions/{token}/events.
    Inbound events are delivered by the room service through dispatch().

    Attributes:
        room_id: Room the channel connects to
        session_token: Session the channel authenticates as
    """

    def __init__(
        self,
        room_id: str,
        session_token: str,
        publisher: RoomEventPublisher,
        logger: StructuredLogger,
    ):
        self.room_id = room_id
        self.session_token = session_token
        self._publisher = publisher
        self._logger = logger.bind(room_id=room_id)
        self._handlers: Dict[str, List[Callable[..., None]]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, event: RoomEventType, payload: Any = None) -> None:
        """Publish one outbound event (dropped once the channel is closed)."""
        if self._closed:
            return

        message = RoomEventMessage.create(
            room_id=self.room_id,
            event=event,
            participant=payload if isinstance(payload, ParticipantSnapshot) else None,
            zone=payload if isinstance(payload, ZoneSnapshot) else None,
        )
        self._publisher.publish_event(message, self.session_token)

    def on(self, event: str, handler: Callable[..., None]) -> None:
        self._handlers.setdefault(event, []).append(handler)

    def dispatch(self, event: str, *args: Any) -> int:
        """
        Run the handlers registered for an inbound event.

        A disconnect closes the channel even if a handler raises.

        Returns:
            Number of handlers called
        """
        if self._closed:
            return 0

        handlers = list(self._handlers.get(event, ()))
        try:
            for handler in handlers:
                handler(*args)
        finally:
            if event == DISCONNECT:
                self._closed = True
                self._handlers.clear()
        return len(handlers)

    def disconnect(self, close: bool = True) -> None:
        """
        Server-side disconnect.

        Args:
            close: Also tell the client, with a final disconnect frame
        """
        if self._closed:
            return

        if close:
            self.emit(RoomEventType.DISCONNECT)
        self._closed = True
        self._handlers.clear()

        self._logger.info(
            event=LogEvent.CHANNEL_CLOSED,
            message="Channel closed by server",
            metadata={'notified_client': close}
        )


class ChannelListener:
    """Forwards room controller callbacks to one participant channel."""

    def __init__(self, channel: ParticipantChannel, room: RoomController):
        self.channel = channel
        self.room = room

    def on_participant_joined(self, participant: Participant) -> None:
        self.channel.emit(
            RoomEventType.NEW_PARTICIPANT, ParticipantSnapshot.from_participant(participant)
        )

    def on_participant_moved(self, participant: Participant) -> None:
        self.channel.emit(
            RoomEventType.PARTICIPANT_MOVED, ParticipantSnapshot.from_participant(participant)
        )

    def on_participant_disconnected(self, participant: Participant) -> None:
        self.channel.emit(
            RoomEventType.PARTICIPANT_DISCONNECT, ParticipantSnapshot.from_participant(participant)
        )

    def on_zone_updated(self, zone: ConversationZone) -> None:
        self.channel.emit(RoomEventType.ZONE_UPDATED, ZoneSnapshot.from_zone(zone))

    def on_zone_destroyed(self, zone: ConversationZone) -> None:
        self.channel.emit(RoomEventType.ZONE_DESTROYED, ZoneSnapshot.from_zone(zone))

    def on_room_closing(self) -> None:
        self.channel.emit(RoomEventType.ROOM_CLOSING)
        self.channel.disconnect(True)
        self.room.remove_listener(self)


class RoomSubscriptionHandler:
    """
    Accepts or rejects connecting participant channels.

    Usage:
        handler = RoomSubscriptionHandler(directory)
        session = handler.connect(channel, room_id, session_token)
        if session is None:
            ...  # channel was already disconnected
    """

    def __init__(self, directory: RoomDirectory):
        self.directory = directory

    def connect(
        self,
        channel: ParticipantChannel,
        room_id: str,
        session_token: str,
    ) -> Optional[Session]:
        """
        Authenticate a channel and subscribe it to its room.

        Returns:
            The channel's Session, or None if the channel was rejected
        """
        room = self.directory.lookup_room(room_id)
        session = room.get_session(session_token) if room is not None else None

        if room is None or session is None:
            logger.warning(
                f"⚠️ Rejected channel for room {room_id}: "
                f"{'unknown room' if room is None else 'unknown session'}"
            )
            channel.disconnect(True)
            return None

        listener = ChannelListener(channel, room)
        room.add_listener(listener)

        def on_disconnect() -> None:
            room.remove_listener(listener)
            room.leave(session)

        def on_move(location: Location) -> None:
            room.update_position(session.participant, location)

        channel.on(DISCONNECT, on_disconnect)
        channel.on(MOVE, on_move)

        logger.info(
            f"🔗 Channel connected: {session.participant.participant_id} → room {room_id}"
        )
        return session
