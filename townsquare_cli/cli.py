"""
Townsquare CLI - Main entry point.

Provides command-line interface for sending admin commands to the room
service over MQTT and printing its responses.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .mqtt_client import MQTTCommandClient


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to YAML file

    Returns:
        Dictionary with command configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
        return config or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}")


def send_command(
    command: Dict[str, Any],
    service_id: str = "town_01",
    broker: str = "localhost",
    port: int = 1883,
    wait: bool = True,
    timeout: float = 5.0
) -> Optional[Dict[str, Any]]:
    """
    Send command to the room service via MQTT.

    Args:
        command: Command dictionary
        service_id: Target service ID
        broker: MQTT broker host
        port: MQTT broker port
        wait: Wait for the service's response
        timeout: Seconds to wait for the response

    Returns:
        The response message (None if not waiting or no response arrived)
    """
    topic = f"townsquare/control/{service_id}/commands"
    response_topic = f"townsquare/control/{service_id}/responses" if wait else None

    client = MQTTCommandClient(broker=broker, port=port)
    return client.send_command(topic, command, qos=1, response_topic=response_topic, timeout=timeout)


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into a command payload."""
    if args.command == 'create-room':
        return {
            'command': 'create_room',
            'friendly_name': args.friendly_name,
            'is_publicly_listed': not args.private,
        }

    if args.command == 'join-room':
        return {
            'command': 'join_room',
            'room_id': args.room_id,
            'user_name': args.user_name,
        }

    if args.command == 'create-zone':
        config = load_yaml_config(args.config)
        return {
            **config,
            'command': 'create_zone',
            'room_id': args.room_id,
            'session_token': args.session_token,
        }

    if args.command == 'update-room':
        command = {
            'command': 'update_room',
            'room_id': args.room_id,
            'password': args.password,
        }
        if args.friendly_name is not None:
            command['friendly_name'] = args.friendly_name
        if args.public is not None:
            command['is_publicly_listed'] = args.public
        return command

    if args.command == 'delete-room':
        return {
            'command': 'delete_room',
            'room_id': args.room_id,
            'password': args.password,
        }

    # list-rooms, status
    return {'command': args.command.replace('-', '_')}


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Townsquare CLI - Send admin commands to the room service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a public room
  townsquare-cli create-room "Lobby"

  # Join it (prints session_token and media_token)
  townsquare-cli join-room 3fa2b1c0 ada

  # Create a conversation zone from YAML (label, topic, bounding_box)
  townsquare-cli create-zone 3fa2b1c0 <session_token> config/commands/create_zone_fireplace.yaml

  # Rename / unlist / delete (update password from create-room)
  townsquare-cli update-room 3fa2b1c0 <password> --name "Hall" --private
  townsquare-cli delete-room 3fa2b1c0 <password>

  # Simple commands (no arguments)
  townsquare-cli list-rooms
  townsquare-cli status
"""
    )

    # Global arguments
    parser.add_argument(
        "--service-id",
        default="town_01",
        help="Target service ID (default: town_01)"
    )
    parser.add_argument(
        "--broker",
        default="localhost",
        help="MQTT broker host (default: localhost)"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=1883,
        help="MQTT broker port (default: 1883)"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=5.0,
        help="Seconds to wait for the response (default: 5)"
    )
    parser.add_argument(
        "--no-wait",
        action="store_true",
        help="Send the command without waiting for a response"
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    create_room = subparsers.add_parser('create-room', help='Create a room')
    create_room.add_argument('friendly_name', help='Room name')
    create_room.add_argument('--private', action='store_true', help='Do not list the room publicly')

    join_room = subparsers.add_parser('join-room', help='Join a room')
    join_room.add_argument('room_id', help='Room ID')
    join_room.add_argument('user_name', help='Display name')

    create_zone = subparsers.add_parser('create-zone', help='Create a conversation zone from YAML config')
    create_zone.add_argument('room_id', help='Room ID')
    create_zone.add_argument('session_token', help='Session token from join-room')
    create_zone.add_argument('config', help='Path to zone config YAML')

    update_room = subparsers.add_parser('update-room', help='Rename or relist a room')
    update_room.add_argument('room_id', help='Room ID')
    update_room.add_argument('password', help='Room update password')
    update_room.add_argument('--name', dest='friendly_name', help='New room name')
    listing = update_room.add_mutually_exclusive_group()
    listing.add_argument('--public', dest='public', action='store_const', const=True, help='List publicly')
    listing.add_argument('--private', dest='public', action='store_const', const=False, help='Unlist')

    delete_room = subparsers.add_parser('delete-room', help='Close and delete a room')
    delete_room.add_argument('room_id', help='Room ID')
    delete_room.add_argument('password', help='Room update password')

    subparsers.add_parser('list-rooms', help='List public rooms')
    subparsers.add_parser('status', help='Query service status')

    return parser


def main():
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        command = build_command(args)
        response = send_command(
            command,
            args.service_id,
            args.broker,
            args.port,
            wait=not args.no_wait,
            timeout=args.timeout,
        )
    except Exception as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.no_wait:
        return

    if response is None:
        print(f"⚠️ No response within {args.timeout}s", file=sys.stderr)
        sys.exit(2)

    print(json.dumps(response, indent=2))
    if not response.get('ok'):
        sys.exit(1)


if __name__ == '__main__':
    main()
