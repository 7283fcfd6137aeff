"""
MQTT Publishers
==============

Bounded Context: Message Production

Public API
----------
    BasePublisher: Abstract publisher (connection management, per-call topic)
    RoomEventPublisher: Outbound room event publisher
"""

from .base import BasePublisher
from .room_event import RoomEventPublisher

__all__ = [
    'BasePublisher',
    'RoomEventPublisher',
]
