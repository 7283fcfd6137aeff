"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Types shared by outbound room events and inbound participant messages.

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Serialization: to_dict() / from_dict()
- Schema versioning for evolution
"""

from dataclasses import dataclass
from datetime import datetime, timezone

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper.

    Example:
        >>> ts = Timestamp.now()
        >>> ts.value
        '2026-10-17T15:30:45.123456+00:00'
    """
    value: str

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current UTC time."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        return cls(value=dt.isoformat())

    def to_datetime(self) -> datetime:
        """
        Parse to datetime object.

        Raises:
            ValueError: If timestamp format invalid
        """
        try:
            return datetime.fromisoformat(self.value)
        except ValueError as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value}") from e

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value
