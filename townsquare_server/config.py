"""
Configuration schema for the room service.

This module defines the configuration structure for the room service:
MQTT broker and topic settings, media provisioning, room capacity, and
rooms (with their conversation zones) seeded at startup.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from townsquare_room import BoundingBox, ConversationZone


@dataclass(frozen=True)
class ZoneConfig:
    """Conversation zone seeded into a room at startup."""

    label: str
    topic: str
    x: float
    y: float
    height: float
    width: float

    def __post_init__(self):
        """Validate zone configuration."""
        if not self.label:
            raise ValueError("Zone label cannot be empty")

        if not self.topic:
            raise ValueError(f"Zone '{self.label}' topic cannot be empty")

        if self.height < 0 or self.width < 0:
            raise ValueError(
                f"Zone '{self.label}' must have non-negative dimensions, "
                f"got height={self.height} width={self.width}"
            )

    def to_zone(self) -> ConversationZone:
        return ConversationZone(
            label=self.label,
            topic=self.topic,
            bounding_box=BoundingBox(x=self.x, y=self.y, height=self.height, width=self.width),
        )


@dataclass(frozen=True)
class RoomConfig:
    """Room seeded into the directory at startup."""

    friendly_name: str
    is_publicly_listed: bool = True
    zones: List[ZoneConfig] = field(default_factory=list)

    def __post_init__(self):
        if not self.friendly_name:
            raise ValueError("Room friendly_name cannot be empty")


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 1  # Session channels: at-least-once

    command_topic: str = "townsquare/control/{service_id}/commands"
    response_topic: str = "townsquare/control/{service_id}/responses"
    status_topic: str = "townsquare/control/{service_id}/status"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )

        for name in ("command_topic", "response_topic", "status_topic"):
            if "{service_id}" not in getattr(self, name):
                raise ValueError(f"{name} must contain '{{service_id}}'")


@dataclass(frozen=True)
class ProvisioningConfig:
    """Media provisioning configuration."""

    secret: Optional[str] = None  # None: generated per process
    token_ttl_s: int = 3600

    def __post_init__(self):
        if self.token_ttl_s <= 0:
            raise ValueError(
                f"token_ttl_s must be positive, got {self.token_ttl_s}"
            )

        if self.secret is not None and len(self.secret) < 16:
            raise ValueError("Provisioning secret must be at least 16 characters")


@dataclass(frozen=True)
class ServiceConfig:
    """
    Main configuration for the room service.

    This configuration is loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    # Service identification
    service_id: str

    # MQTT configuration
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)

    # Media provisioning
    provisioning: ProvisioningConfig = field(default_factory=ProvisioningConfig)

    # Rooms
    room_capacity: int = 50
    rooms: List[RoomConfig] = field(default_factory=list)

    def __post_init__(self):
        """Validate service configuration."""
        if not self.service_id:
            raise ValueError("service_id cannot be empty")

        if "/" in self.service_id or "+" in self.service_id or "#" in self.service_id:
            raise ValueError(
                f"service_id must not contain MQTT topic characters, got {self.service_id!r}"
            )

        if self.room_capacity < 1:
            raise ValueError(
                f"room_capacity must be at least 1, got {self.room_capacity}"
            )

    @property
    def command_topic(self) -> str:
        return self.mqtt_config.command_topic.format(service_id=self.service_id)

    @property
    def response_topic(self) -> str:
        return self.mqtt_config.response_topic.format(service_id=self.service_id)

    @property
    def status_topic(self) -> str:
        return self.mqtt_config.status_topic.format(service_id=self.service_id)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "ServiceConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            service_id: "town_01"
            room_capacity: 50

            mqtt_config:
              broker: "localhost"
              port: 1883
              username: null
              password: null

            provisioning:
              secret: "change-me-please-0123456789"
              token_ttl_s: 3600

            rooms:
              - friendly_name: "Lobby"
                is_publicly_listed: true
                zones:
                  - label: "fireplace"
                    topic: "Weekend plans"
                    bounding_box: {x: 100, y: 100, height: 40, width: 60}

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If a section is missing required keys or fails validation
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        # Parse nested configs
        mqtt_config = MQTTConfig(**data.get("mqtt_config", {}))
        provisioning = ProvisioningConfig(**data.get("provisioning", {}))

        try:
            rooms = [
                RoomConfig(
                    friendly_name=r["friendly_name"],
                    is_publicly_listed=r.get("is_publicly_listed", True),
                    zones=[
                        ZoneConfig(
                            label=z["label"],
                            topic=z["topic"],
                            x=float(z["bounding_box"]["x"]),
                            y=float(z["bounding_box"]["y"]),
                            height=float(z["bounding_box"]["height"]),
                            width=float(z["bounding_box"]["width"]),
                        )
                        for z in r.get("zones", [])
                    ],
                )
                for r in data.get("rooms", [])
            ]
            service_id = data["service_id"]
        except KeyError as e:
            raise ValueError(f"Missing required config key: {e}")

        return cls(
            service_id=service_id,
            mqtt_config=mqtt_config,
            provisioning=provisioning,
            room_capacity=data.get("room_capacity", 50),
            rooms=rooms,
        )
