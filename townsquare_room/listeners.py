"""
Room Listener Fan-out
=====================

Bounded Context: Delivering room state changes to subscribers.

Design:
- RoomListener: one method per event kind (Protocol, structural typing)
- ListenerRegistry: ordered registration, idempotent removal
- Synchronous, in registration order
- Each delivery guarded: a failing listener is logged, the rest still
  receive the event
"""

import logging
from typing import List, Protocol

from townsquare_room.participant import Participant
from townsquare_room.zone import ConversationZone

logger = logging.getLogger(__name__)


class RoomListener(Protocol):
    """Callbacks a room subscriber implements."""

    def on_participant_joined(self, participant: Participant) -> None:
        ...

    def on_participant_moved(self, participant: Participant) -> None:
        ...

    def on_participant_disconnected(self, participant: Participant) -> None:
        ...

    def on_zone_updated(self, zone: ConversationZone) -> None:
        ...

    def on_zone_destroyed(self, zone: ConversationZone) -> None:
        ...

    def on_room_closing(self) -> None:
        ...


LISTENER_EVENTS = frozenset({
    "on_participant_joined",
    "on_participant_moved",
    "on_participant_disconnected",
    "on_zone_updated",
    "on_zone_destroyed",
    "on_room_closing",
})


class ListenerRegistry:
    """
    Ordered collection of RoomListener objects.

    Thread Safety:
        NOT thread-safe; owned by a single RoomController, which is driven
        from one dispatch thread.

    Example:
        registry = ListenerRegistry()
        registry.add(listener)
        registry.notify("on_participant_joined", participant)
        registry.remove(listener)
    """

    def __init__(self):
        self._listeners: List[RoomListener] = []

    def add(self, listener: RoomListener) -> None:
        """Register a listener (appended; notified after existing ones)."""
        self._listeners.append(listener)

    def remove(self, listener: RoomListener) -> None:
        """Deregister a listener. No-op if it was never registered."""
        self._listeners = [l for l in self._listeners if l is not listener]

    def notify(self, event: str, *args) -> int:
        """
        Invoke `event` on every registered listener.

        Iterates over a snapshot, so listeners may deregister themselves
        (or others) while being notified.

        Args:
            event: Listener method name (one of LISTENER_EVENTS)
            *args: Arguments passed to the callback

        Returns:
            Number of listeners that raised

        Raises:
            ValueError: If event is not a listener method name
        """
        if event not in LISTENER_EVENTS:
            raise ValueError(f"Unknown listener event: {event}")

        failures = 0
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception as e:
                failures += 1
                logger.error(
                    f"❌ Listener {listener!r} failed on {event}: {e}", exc_info=True
                )
        return failures

    def __contains__(self, listener: RoomListener) -> bool:
        return any(l is listener for l in self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)
