"""
Structured Logging for Townsquare MQTT
======================================

Bounded Context: Observability

JSON-structured logging for the transport layer.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from townsquare_mqtt.logging import create_logger, LogEvent
    >>> logger = create_logger("channel").bind(room_id="3fa2b1c0")
    >>> logger.info(
    ...     event=LogEvent.CHANNEL_CONNECTED,
    ...     message="Channel accepted",
    ...     metadata={'participant_id': 'p1'}
    ... )
"""

from .events import LogEvent
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'StructuredLogger',
    'create_logger',
]
