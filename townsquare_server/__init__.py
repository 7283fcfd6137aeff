"""
townsquare_server - Room service orchestration

Bounded Context: Running rooms behind MQTT

Components:
  - config: ServiceConfig (YAML, frozen dataclasses)
  - directory: RoomDirectory (room registry, password-protected mutations)
  - provisioning: LocalMediaProvisioner (signed, expiring media tokens)
  - transport: ParticipantChannel, RoomSubscriptionHandler
  - service: RoomService (single dispatch thread, admin commands)
"""

from .config import MQTTConfig, ProvisioningConfig, RoomConfig, ServiceConfig, ZoneConfig
from .directory import RoomDirectory, RoomListing
from .provisioning import LocalMediaProvisioner, MediaProvisioner, ProvisioningError
from .transport import (
    ChannelListener,
    MQTTParticipantChannel,
    ParticipantChannel,
    RoomSubscriptionHandler,
)
from .service import CommandRejected, RoomActivityLogger, RoomService

__all__ = [
    # Config
    "MQTTConfig",
    "ProvisioningConfig",
    "RoomConfig",
    "ServiceConfig",
    "ZoneConfig",
    # Directory
    "RoomDirectory",
    "RoomListing",
    # Provisioning
    "LocalMediaProvisioner",
    "MediaProvisioner",
    "ProvisioningError",
    # Transport
    "ChannelListener",
    "MQTTParticipantChannel",
    "ParticipantChannel",
    "RoomSubscriptionHandler",
    # Service
    "CommandRejected",
    "RoomActivityLogger",
    "RoomService",
]
