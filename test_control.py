"""
Test Control Plane
==================

CommandRegistry and MQTTControlPlane command routing, with the paho
client replaced by a mock (no broker).

Usage:
    pytest test_control.py
"""

import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from townsquare_control import CommandNotAvailableError, CommandRegistry, MQTTControlPlane


def make_plane() -> MQTTControlPlane:
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="townsquare/control/test/commands",
        status_topic="townsquare/control/test/status",
        response_topic="townsquare/control/test/responses",
        client_id="test_plane",
    )
    plane.client = Mock()
    return plane


def published(plane: MQTTControlPlane, topic: str) -> list:
    return [
        json.loads(c.args[1])
        for c in plane.client.publish.call_args_list
        if c.args[0] == topic
    ]


# ─────────────────────────────────────────────────────────────────────
# CommandRegistry
# ─────────────────────────────────────────────────────────────────────

def test_registry_executes_with_payload():
    registry = CommandRegistry()
    handler = Mock(return_value={"ok": True})
    registry.register("create_room", handler, "Create a room")

    result = registry.execute("create_room", {"command": "create_room", "friendly_name": "Lobby"})

    assert result == {"ok": True}
    handler.assert_called_once_with({"command": "create_room", "friendly_name": "Lobby"})


def test_registry_default_payload():
    registry = CommandRegistry()
    handler = Mock()
    registry.register("status", handler, "Status")

    registry.execute("status")

    handler.assert_called_once_with({"command": "status"})


def test_registry_rejects_duplicates():
    registry = CommandRegistry()
    registry.register("status", Mock(), "Status")

    with pytest.raises(ValueError):
        registry.register("status", Mock(), "Status again")


def test_registry_unknown_command_lists_available():
    registry = CommandRegistry()
    registry.register("status", Mock(), "Status")
    registry.register("list_rooms", Mock(), "List rooms")

    with pytest.raises(CommandNotAvailableError) as exc_info:
        registry.execute("reboot")

    assert "list_rooms, status" in str(exc_info.value)


def test_registry_introspection():
    registry = CommandRegistry()
    registry.register("status", Mock(), "Service status")

    assert registry.is_available("status")
    assert not registry.is_available("reboot")
    assert registry.available_commands == {"status"}
    assert registry.get_help() == {"status": "Service status"}
    assert registry.count() == 1

    registry.unregister("status")
    registry.unregister("status")
    assert registry.count() == 0


# ─────────────────────────────────────────────────────────────────────
# MQTTControlPlane
# ─────────────────────────────────────────────────────────────────────

def test_plane_routes_commands_case_insensitively():
    plane = make_plane()
    handler = Mock()
    plane.command_registry.register("status", handler, "Status")

    plane.handle_command({"command": "STATUS", "request_id": "r1"})

    handler.assert_called_once_with({"command": "STATUS", "request_id": "r1"})


def test_plane_answers_unknown_command():
    plane = make_plane()

    plane.handle_command({"command": "reboot", "request_id": "r1"})

    (response,) = published(plane, plane.response_topic)
    assert response["command"] == "reboot"
    assert response["request_id"] == "r1"
    assert response["ok"] is False
    assert "not available" in response["error"]


def test_plane_ignores_empty_command():
    plane = make_plane()

    plane.handle_command({})

    plane.client.publish.assert_not_called()


def test_plane_decodes_mqtt_message():
    plane = make_plane()
    handler = Mock()
    plane.command_registry.register("list_rooms", handler, "List rooms")

    plane._on_message(None, None, SimpleNamespace(payload=b'{"command": "list_rooms"}'))
    plane._on_message(None, None, SimpleNamespace(payload=b'not json'))

    handler.assert_called_once_with({"command": "list_rooms"})


def test_publish_response_shape():
    plane = make_plane()

    message = plane.publish_response("create_room", "r7", ok=True, result={"room_id": "abc"})

    assert published(plane, plane.response_topic) == [message]
    assert message["result"] == {"room_id": "abc"}
    assert "error" not in message
    assert plane.client.publish.call_args.kwargs["qos"] == 1


def test_status_is_retained():
    plane = make_plane()

    plane.publish_status("running", {"rooms": 2})

    (status,) = published(plane, plane.status_topic)
    assert status["status"] == "running"
    assert status["details"] == {"rooms": 2}
    assert status["client_id"] == "test_plane"
    assert plane.client.publish.call_args.kwargs["retain"] is True
