"""
Townsquare CLI - Command-line interface for room service administration.

This package provides a CLI for sending MQTT admin commands to the room
service without manually writing JSON.

Usage:
    townsquare-cli create-room "Lobby"
    townsquare-cli join-room 3fa2b1c0 ada
    townsquare-cli create-zone 3fa2b1c0 <session_token> config/commands/create_zone_fireplace.yaml
    townsquare-cli list-rooms
    townsquare-cli status
"""

__version__ = "1.0.0"
