"""
Townsquare Room Core
====================

Bounded Context: Authoritative per-room state for a live multiplayer space.

Architecture:

    townsquare_room/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   ├── shapes.py      # BoundingBox, contains(), overlaps()
    │   └── detector.py    # OccupancyDetector (vectorised masks)
    │
    ├── participant.py     # Location, Participant, Session
    ├── zone.py            # ConversationZone (ordered occupants)
    ├── listeners.py       # RoomListener protocol, ListenerRegistry fan-out
    └── controller.py      # RoomController (the state machine)

Usage:

    from townsquare_room import (
        RoomController, Participant, Location, ConversationZone, BoundingBox
    )

    room = RoomController("Lobby", True, provisioner)
    room.add_listener(listener)

    session = room.join(Participant("ada"))
    room.create_zone(
        ConversationZone("A", "weekend plans", BoundingBox(x=10, y=10, height=10, width=10))
    )
    room.update_position(session.participant, Location(x=12, y=9, zone_label="A"))
    room.leave(session)   # zone "A" had one occupant -> on_zone_destroyed
"""

from townsquare_room.geometry import BoundingBox, OccupancyDetector, contains, overlaps
from townsquare_room.participant import ORIGIN, Location, Participant, Session
from townsquare_room.zone import ConversationZone
from townsquare_room.listeners import ListenerRegistry, RoomListener
from townsquare_room.controller import DEFAULT_CAPACITY, MediaProvisioner, RoomController

__all__ = [
    # Geometry
    "BoundingBox",
    "OccupancyDetector",
    "contains",
    "overlaps",
    # Entities
    "ORIGIN",
    "Location",
    "Participant",
    "Session",
    "ConversationZone",
    # Fan-out
    "ListenerRegistry",
    "RoomListener",
    # Controller
    "DEFAULT_CAPACITY",
    "MediaProvisioner",
    "RoomController",
]

__version__ = "1.0.0"
