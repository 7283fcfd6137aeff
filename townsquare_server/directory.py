"""
Room Directory - Thread-safe room registry.

This module provides the RoomDirectory class which owns every live
RoomController of the service, keyed by room id. It is an explicitly
constructed object (one per service), never a module-level singleton.

Thread Safety:
- Uses threading.Lock for protecting the room dict
- Snapshot pattern for list_public_rooms() to minimize lock holding time
- Room teardown (disconnect_all) runs outside the lock

Mutation rules:
- update_room() / delete_room() require the room's update password
- Wrong password or unknown room: return False, nothing changes
"""

import logging
import secrets
import threading
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from townsquare_room import DEFAULT_CAPACITY, MediaProvisioner, RoomController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomListing:
    """Public directory entry for one room."""

    room_id: str
    friendly_name: str
    current_occupancy: int
    maximum_occupancy: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RoomDirectory:
    """
    Registry of live rooms.

    Usage:
        directory = RoomDirectory(provisioner)

        room = directory.create_room("Lobby", is_publicly_listed=True)
        directory.lookup_room(room.room_id)       # -> room
        directory.list_public_rooms()             # -> [RoomListing(...)]

        directory.update_room(room.room_id, room.update_password, friendly_name="Hall")
        directory.delete_room(room.room_id, room.update_password)  # closes the room
    """

    def __init__(self, provisioner: MediaProvisioner, room_capacity: int = DEFAULT_CAPACITY):
        self._provisioner = provisioner
        self._room_capacity = room_capacity
        self._rooms: Dict[str, RoomController] = {}
        self._lock = threading.Lock()

    def create_room(self, friendly_name: str, is_publicly_listed: bool) -> RoomController:
        """
        Create and register a new room.

        Raises:
            ValueError: If friendly_name is empty
        """
        if not friendly_name:
            raise ValueError("friendly_name cannot be empty")

        room = RoomController(
            friendly_name,
            is_publicly_listed,
            self._provisioner,
            capacity=self._room_capacity,
        )
        with self._lock:
            # room ids are random; regenerate on the rare collision
            while room.room_id in self._rooms:
                room.room_id = secrets.token_hex(4)
            self._rooms[room.room_id] = room

        logger.info(
            f"🏠 Room created: {room.room_id} ({friendly_name!r}, "
            f"public={is_publicly_listed})"
        )
        return room

    def lookup_room(self, room_id: str) -> Optional[RoomController]:
        with self._lock:
            return self._rooms.get(room_id)

    def list_public_rooms(self) -> List[RoomListing]:
        """Listings for every publicly listed room, in creation order."""
        with self._lock:
            rooms = list(self._rooms.values())

        return [
            RoomListing(
                room_id=room.room_id,
                friendly_name=room.friendly_name,
                current_occupancy=room.occupancy,
                maximum_occupancy=room.capacity,
            )
            for room in rooms
            if room.is_publicly_listed
        ]

    def update_room(
        self,
        room_id: str,
        password: str,
        friendly_name: Optional[str] = None,
        make_public: Optional[bool] = None,
    ) -> bool:
        """
        Rename a room and/or change its listing.

        Returns:
            False if the room is unknown, the password is wrong, or
            friendly_name is given but empty; True otherwise
        """
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not self._password_matches(room, password):
                return False

            if friendly_name is not None:
                if not friendly_name:
                    return False
                room.friendly_name = friendly_name

            if make_public is not None:
                room.is_publicly_listed = make_public

        logger.info(f"✏️  Room updated: {room_id}")
        return True

    def delete_room(self, room_id: str, password: str) -> bool:
        """
        Close every connection of a room and remove it.

        Returns:
            True if the room was deleted
        """
        with self._lock:
            room = self._rooms.get(room_id)
            if room is None or not self._password_matches(room, password):
                return False
            del self._rooms[room_id]

        room.disconnect_all()
        logger.info(f"🗑️  Room deleted: {room_id}")
        return True

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    @staticmethod
    def _password_matches(room: RoomController, password: str) -> bool:
        return secrets.compare_digest(
            room.update_password.encode("utf-8"), (password or "").encode("utf-8")
        )
