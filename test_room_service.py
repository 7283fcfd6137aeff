"""
Test Room Service
=================

Admin commands and inbound participant messages through the dispatch
queue, with the MQTT clients replaced by mocks (no broker). The queue is
drained on the test thread instead of the dispatch thread.

Usage:
    pytest test_room_service.py
"""

import json
from unittest.mock import Mock

from townsquare_control import MQTTControlPlane
from townsquare_mqtt import InboundMessage, InboundType, RoomEventType
from townsquare_room import Location
from townsquare_server import (
    ProvisioningConfig,
    RoomConfig,
    RoomService,
    ServiceConfig,
    ZoneConfig,
)


SECRET = "test-secret-0123456789abcdef"


def make_service(rooms=(), room_capacity=50):
    config = ServiceConfig(
        service_id="test",
        provisioning=ProvisioningConfig(secret=SECRET),
        room_capacity=room_capacity,
        rooms=list(rooms),
    )
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic=config.command_topic,
        status_topic=config.status_topic,
        response_topic=config.response_topic,
        client_id="test_plane",
    )
    plane.client = Mock()
    publisher = Mock()
    publisher.get_stats.return_value = {"message_count": 0}

    service = RoomService(config, plane, publisher)
    service.setup()
    return service, plane, publisher


def send(service: RoomService, plane: MQTTControlPlane, command: dict) -> dict:
    """Deliver a command as the control plane would, drain, return the response."""
    plane.handle_command(command)
    service.drain()
    topic, payload = plane.client.publish.call_args.args
    assert topic == plane.response_topic
    return json.loads(payload)


def events_sent(publisher: Mock) -> list:
    """(event, session_token) for every published room event."""
    return [(c.args[0].event, c.args[1]) for c in publisher.publish_event.call_args_list]


def create_and_join(service, plane, user_name="ada"):
    created = send(service, plane, {"command": "create_room", "friendly_name": "Lobby"})
    room_id = created["result"]["room_id"]
    joined = send(service, plane, {"command": "join_room", "room_id": room_id, "user_name": user_name})
    return created["result"], joined["result"]


def inbound(room_id, session_token, type_, location=None) -> InboundMessage:
    return InboundMessage(room_id=room_id, session_token=session_token, type=type_, location=location)


# ─────────────────────────────────────────────────────────────────────
# Setup
# ─────────────────────────────────────────────────────────────────────

def test_setup_registers_commands():
    _, plane, _ = make_service()

    assert plane.command_registry.available_commands == {
        "create_room", "join_room", "create_zone", "update_room",
        "delete_room", "list_rooms", "status",
    }


def test_setup_seeds_configured_rooms():
    service, _, _ = make_service(rooms=[
        RoomConfig(
            friendly_name="Lobby",
            zones=[
                ZoneConfig(label="A", topic="chat", x=10, y=10, height=10, width=10),
                ZoneConfig(label="B", topic="overlapping", x=12, y=12, height=10, width=10),
            ],
        ),
        RoomConfig(friendly_name="Back office", is_publicly_listed=False),
    ])

    listings = service.directory.list_public_rooms()
    assert [listing.friendly_name for listing in listings] == ["Lobby"]
    assert len(service.directory) == 2

    lobby = service.directory.lookup_room(listings[0].room_id)
    assert [z.label for z in lobby.zones] == ["A"]


# ─────────────────────────────────────────────────────────────────────
# Admin commands
# ─────────────────────────────────────────────────────────────────────

def test_commands_wait_for_dispatch():
    service, plane, _ = make_service()

    plane.handle_command({"command": "list_rooms"})
    plane.client.publish.assert_not_called()

    assert service.drain() == 1
    plane.client.publish.assert_called_once()


def test_create_room_and_list():
    service, plane, _ = make_service()

    response = send(service, plane, {
        "command": "create_room", "friendly_name": "Lobby", "request_id": "r1",
    })

    assert response["ok"] is True
    assert response["request_id"] == "r1"
    room_id = response["result"]["room_id"]
    assert service.directory.lookup_room(room_id).update_password == response["result"]["update_password"]

    listed = send(service, plane, {"command": "list_rooms"})
    assert listed["result"]["rooms"] == [{
        "room_id": room_id,
        "friendly_name": "Lobby",
        "current_occupancy": 0,
        "maximum_occupancy": 50,
    }]


def test_join_room_returns_session_credentials():
    service, plane, _ = make_service()

    created, joined = create_and_join(service, plane)

    room = service.directory.lookup_room(created["room_id"])
    session = room.get_session(joined["session_token"])
    assert session is not None
    assert joined["participant_id"] == session.participant.participant_id
    assert service.provisioner.verify(joined["media_token"])["room_id"] == room.room_id
    assert [p["user_name"] for p in joined["participants"]] == ["ada"]
    assert joined["zones"] == []
    assert joined["inbound_topic"].endswith(f"/sessions/{joined['session_token']}/inbound")


def test_join_unknown_or_full_room_rejected():
    service, plane, _ = make_service(room_capacity=1)

    unknown = send(service, plane, {"command": "join_room", "room_id": "nope", "user_name": "ada"})
    assert unknown["ok"] is False
    assert "Unknown room" in unknown["error"]

    created, _ = create_and_join(service, plane)
    full = send(service, plane, {
        "command": "join_room", "room_id": created["room_id"], "user_name": "bob",
    })
    assert full["ok"] is False
    assert "full" in full["error"]


def test_missing_field_is_reported():
    service, plane, _ = make_service()

    response = send(service, plane, {"command": "create_room"})

    assert response["ok"] is False
    assert "friendly_name" in response["error"]


def test_create_zone_requires_session_and_validates():
    service, plane, _ = make_service()
    created, joined = create_and_join(service, plane)
    zone_command = {
        "command": "create_zone",
        "room_id": created["room_id"],
        "session_token": joined["session_token"],
        "label": "A",
        "topic": "chat",
        "bounding_box": {"x": 100, "y": 100, "height": 10, "width": 10},
    }

    forged = send(service, plane, {**zone_command, "session_token": "forged"})
    assert forged["ok"] is False

    ok = send(service, plane, zone_command)
    assert ok["ok"] is True
    assert ok["result"]["zone"]["label"] == "A"

    overlap = send(service, plane, {**zone_command, "label": "B", "bounding_box": {
        "x": 95, "y": 95, "height": 20, "width": 20,
    }})
    assert overlap["ok"] is False

    adjacent = send(service, plane, {**zone_command, "label": "C", "bounding_box": {
        "x": 100, "y": 90, "height": 10, "width": 10,
    }})
    assert adjacent["ok"] is True


def test_update_and_delete_room_need_password():
    service, plane, _ = make_service()
    created, _ = create_and_join(service, plane)
    room_id, password = created["room_id"], created["update_password"]

    assert send(service, plane, {
        "command": "update_room", "room_id": room_id, "password": "wrong", "friendly_name": "Hall",
    })["ok"] is False
    assert send(service, plane, {
        "command": "update_room", "room_id": room_id, "password": password,
        "friendly_name": "Hall", "is_publicly_listed": False,
    })["ok"] is True

    room = service.directory.lookup_room(room_id)
    assert room.friendly_name == "Hall"
    assert room.is_publicly_listed is False

    assert send(service, plane, {
        "command": "delete_room", "room_id": room_id, "password": "wrong",
    })["ok"] is False
    assert send(service, plane, {
        "command": "delete_room", "room_id": room_id, "password": password,
    })["ok"] is True
    assert service.directory.lookup_room(room_id) is None


def test_status_command():
    service, plane, _ = make_service()
    create_and_join(service, plane)

    status = send(service, plane, {"command": "status"})["result"]

    assert status["service_id"] == "test"
    assert status["rooms"] == 1
    assert status["channels"] == 0
    assert status["publisher"] == {"message_count": 0}


# ─────────────────────────────────────────────────────────────────────
# Participant channels
# ─────────────────────────────────────────────────────────────────────

def test_inbound_connect_move_disconnect():
    service, plane, publisher = make_service()
    created, ada = create_and_join(service, plane, "ada")
    bob = send(service, plane, {
        "command": "join_room", "room_id": created["room_id"], "user_name": "bob",
    })["result"]
    room_id = created["room_id"]
    room = service.directory.lookup_room(room_id)

    service.submit_inbound(inbound(room_id, ada["session_token"], InboundType.CONNECT))
    service.submit_inbound(inbound(room_id, bob["session_token"], InboundType.CONNECT))
    service.drain()
    assert service.channel_count == 2

    service.submit_inbound(inbound(
        room_id, ada["session_token"], InboundType.MOVE, Location(x=3, y=4, rotation="right"),
    ))
    service.drain()

    ada_participant = room.get_session(ada["session_token"]).participant
    assert ada_participant.location == Location(x=3, y=4, rotation="right")
    assert events_sent(publisher) == [
        (RoomEventType.PARTICIPANT_MOVED, ada["session_token"]),
        (RoomEventType.PARTICIPANT_MOVED, bob["session_token"]),
    ]

    publisher.reset_mock()
    service.submit_inbound(inbound(room_id, ada["session_token"], InboundType.DISCONNECT))
    service.drain()

    assert room.occupancy == 1
    assert service.channel_count == 1
    assert events_sent(publisher) == [
        (RoomEventType.PARTICIPANT_DISCONNECT, bob["session_token"]),
    ]


def test_inbound_connect_with_bad_token_is_rejected():
    service, plane, publisher = make_service()
    created, _ = create_and_join(service, plane)

    service.submit_inbound(inbound(created["room_id"], "forged", InboundType.CONNECT))
    service.drain()

    assert service.channel_count == 0
    assert events_sent(publisher) == [(RoomEventType.DISCONNECT, "forged")]


def test_move_without_connect_is_dropped():
    service, plane, publisher = make_service()
    created, ada = create_and_join(service, plane)

    service.submit_inbound(inbound(
        created["room_id"], ada["session_token"], InboundType.MOVE, Location(x=9, y=9),
    ))
    service.drain()

    room = service.directory.lookup_room(created["room_id"])
    assert room.get_session(ada["session_token"]).participant.location == Location()
    publisher.publish_event.assert_not_called()


def test_delete_room_closes_channels():
    service, plane, publisher = make_service()
    created, ada = create_and_join(service, plane)
    service.submit_inbound(inbound(created["room_id"], ada["session_token"], InboundType.CONNECT))
    service.drain()

    send(service, plane, {
        "command": "delete_room", "room_id": created["room_id"], "password": created["update_password"],
    })

    assert events_sent(publisher) == [
        (RoomEventType.ROOM_CLOSING, ada["session_token"]),
        (RoomEventType.DISCONNECT, ada["session_token"]),
    ]
    assert service.channel_count == 0


def test_close_all_rooms():
    service, plane, _ = make_service(rooms=[RoomConfig(friendly_name="Seeded")])
    create_and_join(service, plane)

    service.close_all_rooms()

    assert len(service.directory) == 0


def test_failed_disconnect_still_forgets_channel():
    service, plane, _ = make_service()
    created, ada = create_and_join(service, plane)
    service.submit_inbound(inbound(created["room_id"], ada["session_token"], InboundType.CONNECT))
    service.drain()

    room = service.directory.lookup_room(created["room_id"])
    room.leave = Mock(side_effect=RuntimeError("boom"))

    service.submit_inbound(inbound(created["room_id"], ada["session_token"], InboundType.DISCONNECT))
    service.drain()

    room.leave.assert_called_once()
    assert service.channel_count == 0
    assert service._channels == {}


# ─────────────────────────────────────────────────────────────────────
# Shutdown
# ─────────────────────────────────────────────────────────────────────

def stopping_service(thread_alive: bool):
    service, plane, publisher = make_service(rooms=[RoomConfig(friendly_name="Seeded")])
    service._running = True
    service.dispatch_thread = Mock()
    service.dispatch_thread.is_alive.return_value = thread_alive
    service.submit_command("list_rooms", service._handle_list_rooms, {"command": "list_rooms"})
    return service, plane, publisher


def test_stop_drains_and_closes_rooms():
    service, _, publisher = stopping_service(thread_alive=False)

    service.stop()

    assert service.dispatch_queue.empty()
    assert len(service.directory) == 0
    publisher.disconnect.assert_called_once_with()


def test_stop_leaves_state_alone_while_dispatch_thread_runs():
    service, _, publisher = stopping_service(thread_alive=True)

    service.stop()

    service.dispatch_thread.join.assert_called_once_with(timeout=5.0)
    assert service.dispatch_queue.qsize() == 1
    assert len(service.directory) == 1
    publisher.disconnect.assert_called_once_with()
