"""
Test Room Directory and Media Provisioning
==========================================

Usage:
    pytest test_directory.py
"""

from unittest.mock import Mock

import pytest

from townsquare_room import Participant
from townsquare_server import (
    LocalMediaProvisioner,
    ProvisioningError,
    RoomDirectory,
    RoomListing,
)


SECRET = "test-secret-0123456789abcdef"


def make_directory(**kwargs) -> RoomDirectory:
    return RoomDirectory(LocalMediaProvisioner(secret=SECRET), **kwargs)


# ─────────────────────────────────────────────────────────────────────
# RoomDirectory
# ─────────────────────────────────────────────────────────────────────

def test_create_and_lookup_room():
    directory = make_directory()

    room = directory.create_room("Lobby", True)

    assert directory.lookup_room(room.room_id) is room
    assert directory.lookup_room("missing") is None
    assert len(directory) == 1
    assert room.capacity == 50


def test_create_room_requires_name():
    with pytest.raises(ValueError):
        make_directory().create_room("", True)


def test_room_capacity_is_configurable():
    room = make_directory(room_capacity=8).create_room("Small", True)
    assert room.capacity == 8


def test_list_public_rooms_only():
    directory = make_directory(room_capacity=10)
    lobby = directory.create_room("Lobby", True)
    directory.create_room("Hidden", False)
    lobby.join(Participant("ada"))

    listings = directory.list_public_rooms()

    assert listings == [
        RoomListing(
            room_id=lobby.room_id,
            friendly_name="Lobby",
            current_occupancy=1,
            maximum_occupancy=10,
        )
    ]
    assert listings[0].to_dict()["current_occupancy"] == 1


def test_update_room_with_password():
    directory = make_directory()
    room = directory.create_room("Lobby", True)

    assert directory.update_room(room.room_id, room.update_password, friendly_name="Hall")
    assert room.friendly_name == "Hall"
    assert room.is_publicly_listed is True

    assert directory.update_room(room.room_id, room.update_password, make_public=False)
    assert room.friendly_name == "Hall"
    assert room.is_publicly_listed is False
    assert directory.list_public_rooms() == []


def test_update_room_rejections_change_nothing():
    directory = make_directory()
    room = directory.create_room("Lobby", True)

    assert not directory.update_room(room.room_id, "wrong", friendly_name="Hall")
    assert not directory.update_room("missing", room.update_password, friendly_name="Hall")
    assert not directory.update_room(room.room_id, room.update_password, friendly_name="", make_public=False)

    assert room.friendly_name == "Lobby"
    assert room.is_publicly_listed is True


def test_delete_room_requires_password():
    directory = make_directory()
    room = directory.create_room("Lobby", True)

    assert not directory.delete_room(room.room_id, "wrong")
    assert not directory.delete_room(room.room_id, "")
    assert not directory.delete_room("missing", room.update_password)
    assert directory.lookup_room(room.room_id) is room


def test_delete_room_closes_it():
    directory = make_directory()
    room = directory.create_room("Lobby", True)
    room.join(Participant("ada"))
    listener = Mock()
    room.add_listener(listener)

    assert directory.delete_room(room.room_id, room.update_password)

    listener.on_room_closing.assert_called_once_with()
    assert room.occupancy == 0
    assert directory.lookup_room(room.room_id) is None
    assert len(directory) == 0


# ─────────────────────────────────────────────────────────────────────
# LocalMediaProvisioner
# ─────────────────────────────────────────────────────────────────────

def test_issued_token_verifies():
    provisioner = LocalMediaProvisioner(secret=SECRET, token_ttl_s=60)

    token = provisioner.provision("room1", "p1")
    claims = provisioner.verify(token)

    assert claims["room_id"] == "room1"
    assert claims["participant_id"] == "p1"
    assert claims["exp"] - claims["iat"] == 60
    assert provisioner.get_stats()["tokens_issued"] == 1


def test_tokens_are_unique():
    provisioner = LocalMediaProvisioner(secret=SECRET)
    assert provisioner.provision("room1", "p1") != provisioner.provision("room1", "p1")


def test_token_expires():
    now = [1_000_000.0]
    provisioner = LocalMediaProvisioner(secret=SECRET, token_ttl_s=30, clock=lambda: now[0])
    token = provisioner.provision("room1", "p1")

    now[0] += 29
    provisioner.verify(token)

    now[0] += 1
    with pytest.raises(ProvisioningError):
        provisioner.verify(token)


def test_forged_or_foreign_token_rejected():
    provisioner = LocalMediaProvisioner(secret=SECRET)
    other = LocalMediaProvisioner(secret="another-secret-0123456789")
    token = provisioner.provision("room1", "p1")
    body, signature = token.split(".")

    with pytest.raises(ProvisioningError):
        other.verify(token)

    with pytest.raises(ProvisioningError):
        provisioner.verify(f"{body}.{'0' * len(signature)}")

    with pytest.raises(ProvisioningError):
        provisioner.verify("not-a-token")


def test_provision_requires_ids():
    provisioner = LocalMediaProvisioner(secret=SECRET)

    with pytest.raises(ProvisioningError):
        provisioner.provision("", "p1")

    with pytest.raises(ProvisioningError):
        provisioner.provision("room1", "")


def test_join_fails_cleanly_when_provisioning_fails():
    directory = RoomDirectory(Mock(provision=Mock(side_effect=ProvisioningError("down"))))
    room = directory.create_room("Lobby", True)

    with pytest.raises(ProvisioningError):
        room.join(Participant("ada"))

    assert room.occupancy == 0
    assert directory.list_public_rooms()[0].current_occupancy == 0
