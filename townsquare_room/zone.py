"""
Conversation Zone Module
========================

Bounded Context: Named rectangular regions and who is inside them.

Design:
- Geometry is immutable (BoundingBox); occupancy is mutable
- Occupants kept in arrival order, duplicates rejected
- Lifecycle (create / destroy-on-empty) belongs to RoomController,
  the zone itself only records membership
"""

from typing import Any, Dict, List, Tuple

from townsquare_room.geometry import BoundingBox


class ConversationZone:
    """
    A labelled, topic-tagged rectangle with an ordered occupant list.

    Attributes:
        label: Unique (per room) zone name
        topic: Conversation topic
        bounding_box: Region on the map, centred at (x, y)

    Example:
        >>> zone = ConversationZone("lounge", "weekend plans",
        ...                         BoundingBox(x=10, y=10, height=10, width=10))
        >>> zone.add_occupant("p1")
        >>> zone.occupant_ids
        ('p1',)
    """

    def __init__(self, label: str, topic: str, bounding_box: BoundingBox):
        self.label = label
        self.topic = topic
        self.bounding_box = bounding_box
        self._occupant_ids: List[str] = []

    @property
    def occupant_ids(self) -> Tuple[str, ...]:
        """Snapshot of occupant identifiers in arrival order."""
        return tuple(self._occupant_ids)

    @property
    def is_empty(self) -> bool:
        return not self._occupant_ids

    def has_occupant(self, participant_id: str) -> bool:
        return participant_id in self._occupant_ids

    def add_occupant(self, participant_id: str) -> None:
        """
        Append an occupant.

        Raises:
            ValueError: If the participant is already an occupant
        """
        if participant_id in self._occupant_ids:
            raise ValueError(
                f"Participant '{participant_id}' already in zone '{self.label}'"
            )
        self._occupant_ids.append(participant_id)

    def remove_occupant(self, participant_id: str) -> bool:
        """
        Remove an occupant if present.

        Returns:
            True if the participant was an occupant
        """
        if participant_id not in self._occupant_ids:
            return False
        self._occupant_ids.remove(participant_id)
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "topic": self.topic,
            "bounding_box": self.bounding_box.to_dict(),
            "occupant_ids": list(self._occupant_ids),
        }

    def __repr__(self) -> str:
        return (
            f"ConversationZone(label={self.label!r}, topic={self.topic!r}, "
            f"occupants={len(self._occupant_ids)})"
        )
