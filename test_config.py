"""
Test Service Configuration
==========================

Usage:
    pytest test_config.py
"""

from pathlib import Path

import pytest
import yaml

from townsquare_server.config import (
    MQTTConfig,
    ProvisioningConfig,
    RoomConfig,
    ServiceConfig,
    ZoneConfig,
)


FULL_CONFIG = {
    "service_id": "town_01",
    "room_capacity": 20,
    "mqtt_config": {
        "broker": "mqtt.local",
        "port": 1884,
        "username": "svc",
        "password": "pw",
        "qos": 2,
    },
    "provisioning": {
        "secret": "0123456789abcdef0123",
        "token_ttl_s": 120,
    },
    "rooms": [
        {
            "friendly_name": "Lobby",
            "is_publicly_listed": True,
            "zones": [
                {
                    "label": "fireplace",
                    "topic": "Weekend plans",
                    "bounding_box": {"x": 100, "y": 100, "height": 40, "width": 60},
                },
            ],
        },
        {"friendly_name": "Back office", "is_publicly_listed": False},
    ],
}


def write_yaml(tmp_path, data) -> Path:
    path = tmp_path / "room_service.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


def test_from_yaml_full(tmp_path):
    config = ServiceConfig.from_yaml(write_yaml(tmp_path, FULL_CONFIG))

    assert config.service_id == "town_01"
    assert config.room_capacity == 20
    assert config.mqtt_config == MQTTConfig(
        broker="mqtt.local", port=1884, username="svc", password="pw", qos=2
    )
    assert config.provisioning == ProvisioningConfig(secret="0123456789abcdef0123", token_ttl_s=120)

    lobby, office = config.rooms
    assert lobby.friendly_name == "Lobby"
    assert lobby.zones == [
        ZoneConfig(label="fireplace", topic="Weekend plans", x=100, y=100, height=40, width=60)
    ]
    assert office == RoomConfig(friendly_name="Back office", is_publicly_listed=False)


def test_from_yaml_defaults(tmp_path):
    config = ServiceConfig.from_yaml(write_yaml(tmp_path, {"service_id": "town_02"}))

    assert config.mqtt_config.broker == "localhost"
    assert config.mqtt_config.port == 1883
    assert config.mqtt_config.qos == 1
    assert config.provisioning.secret is None
    assert config.room_capacity == 50
    assert config.rooms == []


def test_control_topics_are_per_service(tmp_path):
    config = ServiceConfig.from_yaml(write_yaml(tmp_path, {"service_id": "town_02"}))

    assert config.command_topic == "townsquare/control/town_02/commands"
    assert config.response_topic == "townsquare/control/town_02/responses"
    assert config.status_topic == "townsquare/control/town_02/status"


def test_zone_config_builds_zone():
    zone = ZoneConfig(label="A", topic="chat", x=1, y=2, height=3, width=4).to_zone()

    assert zone.label == "A"
    assert zone.topic == "chat"
    assert zone.bounding_box.to_dict() == {"x": 1, "y": 2, "height": 3, "width": 4}
    assert zone.is_empty


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ServiceConfig.from_yaml(tmp_path / "missing.yaml")


def test_missing_keys_raise_value_error(tmp_path):
    with pytest.raises(ValueError):
        ServiceConfig.from_yaml(write_yaml(tmp_path, {"room_capacity": 5}))

    broken_zone = {
        "service_id": "town_01",
        "rooms": [{"friendly_name": "Lobby", "zones": [{"label": "A", "topic": "chat"}]}],
    }
    with pytest.raises(ValueError):
        ServiceConfig.from_yaml(write_yaml(tmp_path, broken_zone))


@pytest.mark.parametrize("kwargs", [
    {"port": 0},
    {"port": 70000},
    {"qos": 3},
    {"command_topic": "townsquare/control/fixed/commands"},
])
def test_invalid_mqtt_config(kwargs):
    with pytest.raises(ValueError):
        MQTTConfig(**kwargs)


def test_invalid_values_rejected():
    with pytest.raises(ValueError):
        ServiceConfig(service_id="")
    with pytest.raises(ValueError):
        ServiceConfig(service_id="town/01")
    with pytest.raises(ValueError):
        ServiceConfig(service_id="town_01", room_capacity=0)
    with pytest.raises(ValueError):
        ProvisioningConfig(token_ttl_s=0)
    with pytest.raises(ValueError):
        ProvisioningConfig(secret="short")
    with pytest.raises(ValueError):
        RoomConfig(friendly_name="")
    with pytest.raises(ValueError):
        ZoneConfig(label="A", topic="", x=0, y=0, height=1, width=1)
    with pytest.raises(ValueError):
        ZoneConfig(label="A", topic="chat", x=0, y=0, height=-1, width=1)


def test_example_config_loads():
    config = ServiceConfig.from_yaml(Path(__file__).parent / "config" / "room_service.yaml")

    assert config.service_id == "town_01"
    assert [r.friendly_name for r in config.rooms] == ["Lobby", "Back office"]
    assert len(config.rooms[0].zones) == 2
