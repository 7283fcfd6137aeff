"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

JSON-per-line logger for the transport layer.

Design:
- Wraps Python's logging module (handlers, levels, thread safety)
- Typed events (LogEvent enum)
- Bound context: bind(room_id=...) returns a child logger whose metadata
  is merged into every entry

Output:
    {
        "timestamp": "2026-10-17T15:30:45.123456+00:00",
        "level": "INFO",
        "component": "channel",
        "event": "channel.connected",
        "message": "Channel accepted",
        "metadata": {"room_id": "3fa2b1c0", "participant_id": "..."}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger.

    Attributes:
        component: Component name (e.g., "channel", "subscriber")
        logger: Underlying Python logger instance
        context: Metadata merged into every entry

    Example:
        >>> logger = StructuredLogger("channel").bind(room_id="3fa2b1c0")
        >>> logger.info(
        ...     event=LogEvent.CHANNEL_CONNECTED,
        ...     message="Channel accepted",
        ...     metadata={'participant_id': 'p1'}
        ... )
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            component: Component identifier
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: townsquare_mqtt.<component>)
            context: Metadata merged into every entry
        """
        self.component = component
        self.logger_name = logger_name or f"townsquare_mqtt.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)
        self.context: Dict[str, Any] = dict(context or {})

        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def bind(self, **context: Any) -> "StructuredLogger":
        """Return a logger for the same component with extra bound metadata."""
        merged = {**self.context, **context}
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger_name,
            context=merged,
        )

    def build_entry(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> Dict[str, Any]:
        """Assemble the JSON-ready log entry."""
        entry: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': event.value,
            'message': message,
        }

        merged = {**self.context, **(metadata or {})}
        if merged:
            entry['metadata'] = merged

        if exc_info is not None:
            entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info)
            }
        return entry

    def _log(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        log_level = getattr(logging, level)
        if not self.logger.isEnabledFor(log_level):
            return

        entry = self.build_entry(level, event, message, metadata, exc_info)
        self.logger.log(
            log_level,
            json.dumps(entry, default=str),
            exc_info=exc_info if level == 'ERROR' else None
        )

    def debug(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log('DEBUG', event, message, metadata)

    def info(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log('INFO', event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        self._log('WARNING', event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log ERROR level message.

        Example:
            >>> try:
            ...     channel.emit("participantMoved", payload)
            ... except ValueError as e:
            ...     logger.error(
            ...         event=LogEvent.SERIALIZATION_ERROR,
            ...         message="Failed to serialize room event",
            ...         exc_info=e,
            ...     )
        """
        self._log('ERROR', event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """
    Passes through the JSON already built by StructuredLogger.

    Tracebacks (ERROR entries) are appended on the following lines.
    """

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


def create_logger(
    component: str,
    level: int = logging.INFO
) -> StructuredLogger:
    """
    Factory function to create configured StructuredLogger.

    Example:
        >>> logger = create_logger("subscriber", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
