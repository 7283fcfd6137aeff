"""
Room Controller
===============

Bounded Context: Authoritative in-memory state of one room.

Responsibilities:
1. Participant / session lifecycle (join, leave, disconnect_all)
2. Zone creation with validation and one-time spatial enrolment
3. Zone membership from self-reported zone labels on every move
4. Listener notification for every state change

Rules:
- After creation, a zone's membership follows Location.zone_label only,
  never x/y.
- Removing the last occupant destroys the zone (zone destroyed, never
  zone updated for it). Creating a zone with no occupants does not.
- join() provisions the media credential before touching any state.

Threading:
- NOT thread-safe. One controller is driven from a single dispatch thread
  (see townsquare_server.service.RoomService), operations run to completion
  in arrival order.
"""

import logging
import secrets
from typing import Dict, List, Optional, Protocol, Tuple

import numpy as np

from townsquare_room.geometry import OccupancyDetector
from townsquare_room.listeners import ListenerRegistry, RoomListener
from townsquare_room.participant import Location, Participant, Session
from townsquare_room.zone import ConversationZone

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50


class MediaProvisioner(Protocol):
    """Issues third-party audio/video credentials for a joining participant."""

    def provision(self, room_id: str, participant_id: str) -> str:
        ...


class RoomController:
    """
    Owns participants, sessions and zones for a single room.

    Attributes:
        room_id: Room identifier (generated if not given)
        friendly_name: Human-readable room name
        is_publicly_listed: Whether the directory lists this room
        update_password: Secret required to update or delete the room
        capacity: Advertised maximum occupancy

    Usage:
        room = RoomController("Lobby", True, provisioner)
        room.add_listener(listener)

        session = room.join(Participant("ada"))
        room.create_zone(ConversationZone("A", "chat", BoundingBox(10, 10, 10, 10)))
        room.update_position(session.participant, Location(x=25, y=25, zone_label="A"))
        room.leave(session)
    """

    def __init__(
        self,
        friendly_name: str,
        is_publicly_listed: bool,
        provisioner: MediaProvisioner,
        room_id: Optional[str] = None,
        capacity: int = DEFAULT_CAPACITY,
    ):
        self.room_id = room_id or secrets.token_hex(4)
        self.friendly_name = friendly_name
        self.is_publicly_listed = is_publicly_listed
        self.update_password = secrets.token_urlsafe(18)
        self.capacity = capacity

        self._provisioner = provisioner
        self._participants: Dict[str, Participant] = {}
        self._sessions: Dict[str, Session] = {}
        self._zones: List[ConversationZone] = []
        self._listeners = ListenerRegistry()

    # ===== Read-only views =====

    @property
    def participants(self) -> Tuple[Participant, ...]:
        """Connected participants in join order."""
        return tuple(self._participants.values())

    @property
    def sessions(self) -> Tuple[Session, ...]:
        return tuple(self._sessions.values())

    @property
    def zones(self) -> Tuple[ConversationZone, ...]:
        """Live zones in creation order."""
        return tuple(self._zones)

    @property
    def occupancy(self) -> int:
        return len(self._participants)

    def get_session(self, session_token: str) -> Optional[Session]:
        return self._sessions.get(session_token)

    def get_zone(self, label: Optional[str]) -> Optional[ConversationZone]:
        if not label:
            return None
        for zone in self._zones:
            if zone.label == label:
                return zone
        return None

    def active_zone(self, participant: Participant) -> Optional[ConversationZone]:
        """Resolve a participant's zone reference against the live zones."""
        return self.get_zone(participant.zone_label)

    # ===== Listeners =====

    def add_listener(self, listener: RoomListener) -> None:
        self._listeners.add(listener)

    def remove_listener(self, listener: RoomListener) -> None:
        self._listeners.remove(listener)

    # ===== Participant lifecycle =====

    def join(self, participant: Participant) -> Session:
        """
        Add a participant to the room.

        The media credential is provisioned first; if provisioning raises,
        the error propagates and the room is left unchanged.

        Args:
            participant: New participant (at its initial location, no zone)

        Returns:
            The new Session
        """
        media_token = self._provisioner.provision(self.room_id, participant.participant_id)

        session = Session(participant=participant, media_token=media_token)
        self._participants[participant.participant_id] = participant
        self._sessions[session.session_token] = session

        logger.info(
            f"👋 {participant.user_name} ({participant.participant_id}) joined room {self.room_id}"
        )
        self._listeners.notify("on_participant_joined", participant)
        return session

    def leave(self, session: Session) -> None:
        """
        Destroy a session and remove its participant from the room.

        Operating on a session that is not part of this room is a caller
        error and is not guarded against.
        """
        participant = session.participant
        del self._participants[participant.participant_id]
        del self._sessions[session.session_token]

        zone = self.active_zone(participant)
        if zone is not None:
            self._remove_occupant(zone, participant)

        logger.info(f"🚪 {participant.participant_id} left room {self.room_id}")
        self._listeners.notify("on_participant_disconnected", participant)

    def update_position(self, participant: Participant, location: Location) -> None:
        """
        Store a participant's new location and follow its zone label.

        Membership is decided by location.zone_label alone:
        - same label as now: no membership change
        - label of another live zone: leave the old zone, join the new one
        - no label / unknown label: leave the old zone, if any

        Listeners always receive on_participant_moved last.
        """
        participant.location = location

        current = self.active_zone(participant)
        target = self.get_zone(location.zone_label)

        if current is not target:
            if current is not None:
                self._remove_occupant(current, participant)
            if target is not None:
                self._add_occupant(target, participant)
                self._listeners.notify("on_zone_updated", target)

        self._listeners.notify("on_participant_moved", participant)

    # ===== Zones =====

    def create_zone(self, zone: ConversationZone) -> bool:
        """
        Add a conversation zone.

        Validation (first failure wins, nothing is changed or emitted):
        1. topic is non-empty
        2. label is non-empty and unused in this room
        3. box does not overlap any existing zone (edge contact is fine)

        On success every participant strictly inside the box becomes an
        occupant, then listeners receive on_zone_updated once.

        Returns:
            True if the zone was created
        """
        if not zone.topic:
            logger.debug(f"Rejected zone {zone.label!r}: empty topic")
            return False

        if not zone.label or self.get_zone(zone.label) is not None:
            logger.debug(f"Rejected zone {zone.label!r}: missing or duplicate label")
            return False

        existing_boxes = [z.bounding_box for z in self._zones]
        if OccupancyDetector.overlaps_any(zone.bounding_box, existing_boxes):
            logger.debug(f"Rejected zone {zone.label!r}: overlaps an existing zone")
            return False

        self._zones.append(zone)

        participants = list(self._participants.values())
        points = np.array(
            [[p.location.x, p.location.y] for p in participants], dtype=float
        ).reshape(-1, 2)
        mask = OccupancyDetector.contained_mask(zone.bounding_box, points)

        for participant, inside in zip(participants, mask):
            if not inside:
                continue
            previous = self.active_zone(participant)
            if previous is not None:
                self._remove_occupant(previous, participant)
            zone.add_occupant(participant.participant_id)
            participant.zone_label = zone.label

        logger.info(
            f"🗺️  Zone {zone.label!r} created in room {self.room_id} "
            f"with {len(zone.occupant_ids)} occupant(s)"
        )
        self._listeners.notify("on_zone_updated", zone)
        return True

    def _add_occupant(self, zone: ConversationZone, participant: Participant) -> None:
        zone.add_occupant(participant.participant_id)
        participant.zone_label = zone.label

    def _remove_occupant(self, zone: ConversationZone, participant: Participant) -> None:
        """Remove an occupant; destroy the zone if it is now empty."""
        zone.remove_occupant(participant.participant_id)
        if participant.zone_label == zone.label:
            participant.zone_label = None

        if zone.is_empty:
            self._zones.remove(zone)
            logger.info(f"💨 Zone {zone.label!r} destroyed in room {self.room_id}")
            self._listeners.notify("on_zone_destroyed", zone)
        else:
            self._listeners.notify("on_zone_updated", zone)

    # ===== Teardown =====

    def disconnect_all(self) -> None:
        """
        Close the room: notify on_room_closing once, then drop all state.

        Listeners (transport adapters) are responsible for closing their
        connections when they receive on_room_closing.
        """
        logger.info(
            f"🛑 Closing room {self.room_id} ({len(self._sessions)} active session(s))"
        )
        self._listeners.notify("on_room_closing")

        for participant in self._participants.values():
            participant.zone_label = None
        self._sessions.clear()
        self._participants.clear()
        self._zones.clear()

    def __repr__(self) -> str:
        return (
            f"RoomController(room_id={self.room_id!r}, friendly_name={self.friendly_name!r}, "
            f"participants={len(self._participants)}, zones={len(self._zones)})"
        )
