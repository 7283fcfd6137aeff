"""
Room Service - Main orchestrator.

This module provides the RoomService class which ties the room directory
to MQTT: participant channels (inbound subscriber + outbound event
publisher) and admin commands (control plane).

Architecture:
- RoomDirectory owns every RoomController
- RoomSubscriptionHandler wires participant channels to rooms
- Admin commands registered explicitly in the control plane CommandRegistry
- One dispatch thread applies every room operation

Threading Model:
- paho-mqtt inbound subscriber thread (enqueues inbound messages)
- paho-mqtt control plane thread (enqueues admin commands)
- Dispatch Thread (our thread, the ONLY thread touching room state)

RoomControllers are not thread-safe. Every inbound event and every admin
command goes through one queue.Queue, so room operations run to completion
one at a time, in arrival order.
"""

import functools
import logging
import queue
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

from townsquare_room import (
    BoundingBox,
    ConversationZone,
    Participant,
    RoomController,
)
from townsquare_mqtt import (
    InboundMessage,
    InboundSubscriber,
    InboundType,
    LogEvent,
    RoomEventPublisher,
    StructuredLogger,
    create_logger,
)
from townsquare_mqtt.schemas import events_topic, inbound_topic

from townsquare_server.config import RoomConfig, ServiceConfig
from townsquare_server.directory import RoomDirectory
from townsquare_server.provisioning import LocalMediaProvisioner, ProvisioningError
from townsquare_server.transport import (
    DISCONNECT,
    MOVE,
    MQTTParticipantChannel,
    RoomSubscriptionHandler,
)

logger = logging.getLogger(__name__)

CommandHandler = Callable[[Dict[str, Any]], Dict[str, Any]]


class CommandRejected(Exception):
    """An admin command was understood but refused (bad password, unknown room...)."""
    pass


class RoomActivityLogger:
    """RoomListener writing one structured log line per room state change."""

    def __init__(self, room: RoomController, logger: StructuredLogger):
        self.logger = logger.bind(room_id=room.room_id)

    def on_participant_joined(self, participant: Participant) -> None:
        self.logger.info(
            event=LogEvent.PARTICIPANT_JOINED,
            message=f"{participant.user_name} joined",
            metadata={'participant_id': participant.participant_id}
        )

    def on_participant_moved(self, participant: Participant) -> None:
        pass

    def on_participant_disconnected(self, participant: Participant) -> None:
        self.logger.info(
            event=LogEvent.PARTICIPANT_DISCONNECTED,
            message=f"{participant.user_name} left",
            metadata={'participant_id': participant.participant_id}
        )

    def on_zone_updated(self, zone: ConversationZone) -> None:
        self.logger.info(
            event=LogEvent.ZONE_UPDATED,
            message=f"Zone {zone.label} updated",
            metadata={'label': zone.label, 'occupants': len(zone.occupant_ids)}
        )

    def on_zone_destroyed(self, zone: ConversationZone) -> None:
        self.logger.info(
            event=LogEvent.ZONE_DESTROYED,
            message=f"Zone {zone.label} destroyed",
            metadata={'label': zone.label}
        )

    def on_room_closing(self) -> None:
        self.logger.info(event=LogEvent.ROOM_CLOSING, message="Room closing")


class RoomService:
    """
    Main room service.

    Thread Safety:
    - dispatch_queue: Thread-safe queue.Queue (producers: MQTT threads)
    - directory: Protected by internal lock
    - rooms, channels: ONLY accessed from the Dispatch Thread (or from
      drain() while the dispatch thread is not running)

    Usage:
        config = ServiceConfig.from_yaml("config/room_service.yaml")
        control_plane = MQTTControlPlane(...)
        event_publisher = RoomEventPublisher(...)

        service = RoomService(config, control_plane, event_publisher)
        service.inbound_subscriber = InboundSubscriber(
            broker_host=config.mqtt_config.broker,
            on_inbound=service.submit_inbound,
            logger=create_logger("subscriber"),
        )

        service.setup()
        service.start()
        service.wait()  # Blocks until stopped
    """

    def __init__(
        self,
        config: ServiceConfig,
        control_plane,  # MQTTControlPlane
        event_publisher: RoomEventPublisher,
        provisioner=None,  # MediaProvisioner
        inbound_subscriber: Optional[InboundSubscriber] = None,
    ):
        """
        Initialize room service.

        Args:
            config: Service configuration
            control_plane: MQTT control plane for admin commands
            event_publisher: Publisher for outbound room events
            provisioner: Media provisioner (default: LocalMediaProvisioner from config)
            inbound_subscriber: Subscriber delivering inbound participant messages
        """
        self.config = config
        self.control_plane = control_plane
        self.event_publisher = event_publisher
        self.inbound_subscriber = inbound_subscriber

        if provisioner is None:
            provisioner = LocalMediaProvisioner(
                secret=config.provisioning.secret,
                token_ttl_s=config.provisioning.token_ttl_s,
            )
        self.provisioner = provisioner

        # Components
        self.directory = RoomDirectory(provisioner, room_capacity=config.room_capacity)
        self.subscription_handler = RoomSubscriptionHandler(self.directory)
        self._channels: Dict[Tuple[str, str], MQTTParticipantChannel] = {}

        self._room_logger = create_logger("room")
        self._channel_logger = create_logger("channel")

        # Dispatch
        self.dispatch_queue: "queue.Queue[Tuple[str, Any]]" = queue.Queue()
        self.dispatch_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        # Lifecycle state
        self._running = False
        self._processed = 0

        logger.info(f"RoomService initialized for service_id={config.service_id}")

    # ─────────────────────────────────────────────────────────────────────
    # Setup
    # ─────────────────────────────────────────────────────────────────────

    def setup(self):
        """
        Register command handlers and seed configured rooms.

        Must be called before start().
        """
        self._setup_control_handlers()

        for room_config in self.config.rooms:
            self._seed_room(room_config)

        logger.info(f"Setup complete ({len(self.directory)} room(s))")

    def _setup_control_handlers(self):
        """Register admin commands with the control plane's command registry."""
        registry = self.control_plane.command_registry

        commands: List[Tuple[str, CommandHandler, str]] = [
            ("create_room", self._handle_create_room, "Create a room"),
            ("join_room", self._handle_join_room, "Join a room, returns session credentials"),
            ("create_zone", self._handle_create_zone, "Create a conversation zone"),
            ("update_room", self._handle_update_room, "Rename / relist a room (password)"),
            ("delete_room", self._handle_delete_room, "Close and delete a room (password)"),
            ("list_rooms", self._handle_list_rooms, "List publicly listed rooms"),
            ("status", self._handle_status, "Service status"),
        ]

        for name, handler, description in commands:
            registry.register(
                name,
                functools.partial(self.submit_command, name, handler),
                description,
            )

        logger.info("Control handlers registered")

    def _seed_room(self, room_config: RoomConfig) -> RoomController:
        room = self._open_room(room_config.friendly_name, room_config.is_publicly_listed)

        for zone_config in room_config.zones:
            if not room.create_zone(zone_config.to_zone()):
                logger.warning(
                    f"⚠️ Seed zone {zone_config.label!r} rejected in room {room.room_id}"
                )

        logger.info(
            f"🌱 Seeded room {room.room_id} ({room.friendly_name!r}, "
            f"{len(room.zones)} zone(s), update password: {room.update_password})"
        )
        return room

    def _open_room(self, friendly_name: str, is_publicly_listed: bool) -> RoomController:
        room = self.directory.create_room(friendly_name, is_publicly_listed)
        room.add_listener(RoomActivityLogger(room, self._room_logger))
        return room

    # ─────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────

    def start(self):
        """
        Start the room service (non-blocking).

        Lifecycle:
        1. Connect control plane
        2. Connect event publisher
        3. Start dispatch thread
        4. Connect inbound subscriber
        """
        if self._running:
            logger.warning("Service already running")
            return

        logger.info("Starting room service")

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")

        if not self.event_publisher.connect():
            raise RuntimeError("Failed to connect to MQTT broker (event publisher)")

        self.stop_event.clear()
        self.dispatch_thread = threading.Thread(
            target=self._dispatch_loop,
            name="RoomDispatchThread",
            daemon=True
        )
        self.dispatch_thread.start()
        logger.info("Dispatch thread started")

        if self.inbound_subscriber is not None:
            if not self.inbound_subscriber.connect():
                raise RuntimeError("Failed to connect to MQTT broker (inbound subscriber)")
            self.inbound_subscriber.start()

        self._running = True
        self.control_plane.publish_status("running", {"rooms": len(self.directory)})
        logger.info("✅ Room service started")

    def wait(self):
        """Block until stop() is called."""
        if not self._running:
            logger.warning("Service not running")
            return

        try:
            while not self.stop_event.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            logger.info("Received KeyboardInterrupt, stopping...")
            self.stop()

    def stop(self):
        """
        Stop the room service gracefully.

        Lifecycle:
        1. Stop inbound subscriber (no new participant events)
        2. Stop dispatch thread, then apply what is still queued (skipped,
           along with step 3, if the thread does not exit in time)
        3. Close every room (participants receive roomClosing)
        4. Disconnect event publisher
        5. Publish stopped status and disconnect control plane
        """
        if not self._running:
            logger.warning("Service not running")
            return

        logger.info("Stopping room service")

        if self.inbound_subscriber is not None:
            self.inbound_subscriber.stop()

        self.stop_event.set()
        if self.dispatch_thread:
            self.dispatch_thread.join(timeout=5.0)

        if self.dispatch_thread is not None and self.dispatch_thread.is_alive():
            logger.error(
                f"❌ Dispatch thread still running after 5s, leaving "
                f"{self.dispatch_queue.qsize()} queued item(s) and rooms untouched"
            )
        else:
            logger.info("Dispatch thread stopped")
            self.drain()
            self.close_all_rooms()

        self.event_publisher.disconnect()

        self.control_plane.publish_status("stopped")
        self.control_plane.disconnect()

        self._running = False
        logger.info("✅ Room service stopped")

    def close_all_rooms(self):
        """Close every room (dispatch thread must not be running)."""
        for room_id in self.directory.room_ids():
            room = self.directory.lookup_room(room_id)
            if room is not None:
                self.directory.delete_room(room_id, room.update_password)
        self._channels.clear()

    # ─────────────────────────────────────────────────────────────────────
    # Dispatch (producers: MQTT threads, consumer: Dispatch Thread)
    # ─────────────────────────────────────────────────────────────────────

    def submit_inbound(self, message: InboundMessage) -> None:
        """Queue an inbound participant message (any thread)."""
        self.dispatch_queue.put(("inbound", message))

    def submit_command(self, name: str, handler: CommandHandler, command_data: Dict[str, Any]) -> None:
        """Queue an admin command (any thread)."""
        self.dispatch_queue.put(("command", (name, handler, command_data)))

    def _dispatch_loop(self):
        """
        Dispatch thread loop.

        Thread: Dispatch Thread (our thread)
        """
        logger.info("Dispatch loop started")

        while not self.stop_event.is_set():
            try:
                item = self.dispatch_queue.get(timeout=0.1)
            except queue.Empty:
                continue

            self._process(item)

        logger.info("Dispatch loop stopped")

    def drain(self) -> int:
        """
        Process everything currently queued on the calling thread.

        Returns:
            Number of items processed
        """
        count = 0
        while True:
            try:
                item = self.dispatch_queue.get_nowait()
            except queue.Empty:
                return count
            self._process(item)
            count += 1

    def _process(self, item: Tuple[str, Any]) -> None:
        kind, payload = item
        try:
            if kind == "inbound":
                self.handle_inbound(payload)
            elif kind == "command":
                self.execute_command(*payload)
            else:
                logger.warning(f"⚠️ Unknown dispatch item: {kind}")
        except Exception as e:
            logger.error(f"❌ Error processing {kind}: {e}", exc_info=True)
        finally:
            self._processed += 1

    # ─────────────────────────────────────────────────────────────────────
    # Participant channels (Dispatch Thread)
    # ─────────────────────────────────────────────────────────────────────

    def handle_inbound(self, message: InboundMessage) -> None:
        """Route one inbound message to its channel."""
        key = (message.room_id, message.session_token)

        if message.type is InboundType.CONNECT:
            self._connect_channel(message)
            return

        channel = self._channels.get(key)
        if channel is None or channel.closed:
            self._channels.pop(key, None)
            logger.warning(
                f"⚠️ Dropped {message.type.value} for unconnected session in room {message.room_id}"
            )
            return

        if message.type is InboundType.MOVE:
            channel.dispatch(MOVE, message.location)
        else:
            del self._channels[key]
            channel.dispatch(DISCONNECT)

    def _connect_channel(self, message: InboundMessage) -> None:
        key = (message.room_id, message.session_token)

        existing = self._channels.get(key)
        if existing is not None and not existing.closed:
            logger.warning(f"⚠️ Session already connected in room {message.room_id}")
            return

        channel = MQTTParticipantChannel(
            room_id=message.room_id,
            session_token=message.session_token,
            publisher=self.event_publisher,
            logger=self._channel_logger,
        )
        session = self.subscription_handler.connect(channel, message.room_id, message.session_token)

        if session is None:
            self._channels.pop(key, None)
            self._channel_logger.warning(
                event=LogEvent.CHANNEL_REJECTED,
                message="Channel rejected: unknown room or session",
                metadata={'room_id': message.room_id}
            )
            return

        self._channels[key] = channel
        self._channel_logger.info(
            event=LogEvent.CHANNEL_CONNECTED,
            message="Channel accepted",
            metadata={
                'room_id': message.room_id,
                'participant_id': session.participant.participant_id,
            }
        )

    def _purge_closed_channels(self) -> None:
        for key in [k for k, c in self._channels.items() if c.closed]:
            del self._channels[key]

    @property
    def channel_count(self) -> int:
        return sum(1 for c in self._channels.values() if not c.closed)

    # ─────────────────────────────────────────────────────────────────────
    # Command Handlers (Dispatch Thread)
    # ─────────────────────────────────────────────────────────────────────

    def execute_command(
        self,
        name: str,
        handler: CommandHandler,
        command_data: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Run one admin command and publish its response.

        Returns:
            The published response message
        """
        request_id = command_data.get("request_id")
        try:
            result = handler(command_data)
        except CommandRejected as e:
            return self._reject(name, request_id, str(e))
        except KeyError as e:
            return self._reject(name, request_id, f"Missing required field: {e}")
        except (ValueError, TypeError, ProvisioningError) as e:
            return self._reject(name, request_id, str(e))

        logger.info(f"✅ Command {name} done")
        return self.control_plane.publish_response(name, request_id, ok=True, result=result)

    def _reject(self, name: str, request_id: Optional[str], error: str) -> Dict[str, Any]:
        logger.warning(f"⚠️ Command {name} rejected: {error}")
        return self.control_plane.publish_response(name, request_id, ok=False, error=error)

    def _require_room(self, room_id: str) -> RoomController:
        room = self.directory.lookup_room(room_id)
        if room is None:
            raise CommandRejected(f"Unknown room: {room_id}")
        return room

    def _handle_create_room(self, command: Dict[str, Any]) -> Dict[str, Any]:
        room = self._open_room(
            command["friendly_name"],
            bool(command.get("is_publicly_listed", True)),
        )
        return {"room_id": room.room_id, "update_password": room.update_password}

    def _handle_join_room(self, command: Dict[str, Any]) -> Dict[str, Any]:
        room = self._require_room(command["room_id"])

        user_name = command["user_name"]
        if not user_name:
            raise CommandRejected("user_name cannot be empty")

        if room.occupancy >= room.capacity:
            raise CommandRejected(f"Room {room.room_id} is full ({room.capacity})")

        session = room.join(Participant(user_name))
        return {
            "room_id": room.room_id,
            "friendly_name": room.friendly_name,
            "is_publicly_listed": room.is_publicly_listed,
            "participant_id": session.participant.participant_id,
            "session_token": session.session_token,
            "media_token": session.media_token,
            "participants": [p.to_dict() for p in room.participants],
            "zones": [z.to_dict() for z in room.zones],
            "inbound_topic": inbound_topic(room.room_id, session.session_token),
            "events_topic": events_topic(room.room_id, session.session_token),
        }

    def _handle_create_zone(self, command: Dict[str, Any]) -> Dict[str, Any]:
        room = self._require_room(command["room_id"])

        if room.get_session(command["session_token"]) is None:
            raise CommandRejected("Invalid session token")

        zone = ConversationZone(
            label=command["label"],
            topic=command["topic"],
            bounding_box=BoundingBox.from_dict(command["bounding_box"]),
        )
        if not room.create_zone(zone):
            raise CommandRejected(
                f"Zone {zone.label!r} rejected (empty topic, duplicate label or overlap)"
            )
        return {"zone": zone.to_dict()}

    def _handle_update_room(self, command: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.directory.update_room(
            command["room_id"],
            command["password"],
            friendly_name=command.get("friendly_name"),
            make_public=command.get("is_publicly_listed"),
        )
        if not updated:
            raise CommandRejected("Invalid room id, password or friendly name")
        return {"room_id": command["room_id"]}

    def _handle_delete_room(self, command: Dict[str, Any]) -> Dict[str, Any]:
        deleted = self.directory.delete_room(command["room_id"], command["password"])
        if not deleted:
            raise CommandRejected("Invalid room id or password")
        self._purge_closed_channels()
        return {"room_id": command["room_id"]}

    def _handle_list_rooms(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return {"rooms": [listing.to_dict() for listing in self.directory.list_public_rooms()]}

    def _handle_status(self, command: Dict[str, Any]) -> Dict[str, Any]:
        return self.get_stats()

    def get_stats(self) -> Dict[str, Any]:
        stats: Dict[str, Any] = {
            "service_id": self.config.service_id,
            "running": self._running,
            "rooms": len(self.directory),
            "channels": self.channel_count,
            "queued": self.dispatch_queue.qsize(),
            "processed": self._processed,
            "publisher": self.event_publisher.get_stats(),
        }
        if self.inbound_subscriber is not None:
            stats["subscriber"] = self.inbound_subscriber.get_stats()
        return stats
