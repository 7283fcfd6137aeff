"""
Participant & Session Entities
==============================

Bounded Context: Who is connected to a room, and where they are.

Design:
- Location: immutable value object (replaced wholesale on every move)
- Participant: identity + last-known location + weak zone reference
- Session: one connection's credential/participant pairing

Mutation:
- Only RoomController writes location / zone_label.
- zone_label is a lookup key into the controller's live zone collection,
  never a reference to the zone object itself.
"""

import secrets
import uuid
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, Optional

from townsquare_room.geometry import BoundingBox, contains

ROTATIONS = ("front", "back", "left", "right")


@dataclass(frozen=True)
class Location:
    """
    Self-reported position of a participant.

    Attributes:
        x: Map x-coordinate
        y: Map y-coordinate
        rotation: Facing direction (front, back, left, right)
        moving: Whether the avatar is walking
        zone_label: Label of the zone the client reports being in (optional)
    """

    x: float = 0
    y: float = 0
    rotation: str = "front"
    moving: bool = False
    zone_label: Optional[str] = None

    def __post_init__(self):
        """Validate rotation and moving flag."""
        if self.rotation not in ROTATIONS:
            raise ValueError(
                f"Invalid rotation: {self.rotation}. Must be one of {ROTATIONS}"
            )
        if not isinstance(self.moving, bool):
            raise ValueError(f"moving must be a bool, got {self.moving!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Location":
        """
        Deserialize from dict.

        Raises:
            ValueError: If required keys missing or invalid values
        """
        try:
            return cls(
                x=float(data["x"]),
                y=float(data["y"]),
                rotation=data.get("rotation", "front"),
                moving=data.get("moving", False),
                zone_label=data.get("zone_label"),
            )
        except KeyError as e:
            raise ValueError(f"Missing required Location field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Location data: {e}")


ORIGIN = Location()


class Participant:
    """
    A connected user tracked by a room.

    Attributes:
        participant_id: Unique identifier (generated)
        user_name: Display label
        location: Last-known Location (starts at ORIGIN)
        zone_label: Label of the occupied zone, or None
    """

    def __init__(self, user_name: str, participant_id: Optional[str] = None):
        self.participant_id = participant_id or uuid.uuid4().hex
        self.user_name = user_name
        self.location: Location = ORIGIN
        self.zone_label: Optional[str] = None

    def is_within(self, zone_or_box) -> bool:
        """Check if the current position is strictly inside a zone or box."""
        box = zone_or_box if isinstance(zone_or_box, BoundingBox) else zone_or_box.bounding_box
        return contains(box, self.location.x, self.location.y)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "user_name": self.user_name,
            "location": self.location.to_dict(),
            "zone_label": self.zone_label,
        }

    def __repr__(self) -> str:
        return (
            f"Participant(id={self.participant_id!r}, user_name={self.user_name!r}, "
            f"zone={self.zone_label!r})"
        )


@dataclass
class Session:
    """
    One connection instance for a participant.

    Attributes:
        participant: Owning participant (exclusive for the session lifetime)
        media_token: Credential returned by media-session provisioning
        session_token: Opaque, unique token used by the transport to
                       authenticate the participant's event channel
    """

    participant: Participant
    media_token: str
    session_token: str = field(default_factory=lambda: secrets.token_urlsafe(16))

    def __repr__(self) -> str:
        return f"Session(participant={self.participant.participant_id!r})"
