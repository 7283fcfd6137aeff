"""
MQTTControlPlane - MQTT Control Plane for the room service

Bounded Context: MQTT connection management + admin command reception
Responsibilities:
  - MQTT connection lifecycle (connect, disconnect)
  - Command message reception (subscribe to command topic)
  - Status publishing (retained) and command responses
  - Command delegation to CommandRegistry

QoS Policy:
  - Commands: QoS 1 (at-least-once delivery)
  - Responses: QoS 1
  - Status: QoS 1 + retained (last status persisted)

Threading:
  - MQTT client runs own background thread (loop_start/loop_stop)
  - Callbacks run in MQTT thread; registered handlers must only enqueue
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandRegistry, CommandNotAvailableError

logger = logging.getLogger(__name__)


class MQTTControlPlane:
    """
    MQTT Control Plane for receiving admin commands and publishing results.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="townsquare/control/town_01/commands",
            status_topic="townsquare/control/town_01/status",
            response_topic="townsquare/control/town_01/responses",
            client_id="room_service_town_01"
        )
        control_plane.command_registry.register('create_room', handler, "Create a room")

        if control_plane.connect(timeout=5.0):
            print("Connected to MQTT broker")

        control_plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        response_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.response_topic = response_topic
        self.client_id = client_id

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        self.client.on_connect = self._on_connect
        self.client.on_message = self._on_message
        self.client.on_disconnect = self._on_disconnect

        if username and password:
            self.client.username_pw_set(username, password)

        self._connected = Event()
        self._running = False

        self.command_registry = CommandRegistry()

    def connect(self, timeout: float = 5.0) -> bool:
        """
        Connect to MQTT broker with timeout.

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            logger.info(f"🔌 Connecting to MQTT broker: {self.broker_host}:{self.broker_port}")
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
            self.client.loop_start()
            self._running = True

            if self._connected.wait(timeout=timeout):
                logger.info("✅ MQTT Control Plane connected")
                return True

            logger.error(f"❌ Connection timeout after {timeout}s")
            return False

        except Exception as e:
            logger.error(f"❌ Error connecting to MQTT: {e}")
            return False

    def disconnect(self) -> None:
        """Disconnect from MQTT broker. Safe to call multiple times."""
        if self._running:
            logger.info("🔌 Disconnecting from MQTT broker")
            self.publish_status("disconnected")
            self.client.loop_stop()
            self.client.disconnect()
            self._running = False
            self._connected.clear()
            logger.info("✅ MQTT Control Plane disconnected")

    def publish_status(self, status: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Publish a retained status update."""
        message = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if details:
            message["details"] = details

        try:
            self.client.publish(
                self.status_topic,
                json.dumps(message),
                qos=1,
                retain=True,
            )
            logger.debug(f"📤 Status published: {status}")
        except Exception as e:
            logger.error(f"❌ Error publishing status: {e}")

    def publish_response(
        self,
        command: str,
        request_id: Optional[str],
        ok: bool,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Publish the outcome of a command to the response topic.

        Returns:
            The response message that was published
        """
        message: Dict[str, Any] = {
            "command": command,
            "request_id": request_id,
            "ok": ok,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if result is not None:
            message["result"] = result
        if error is not None:
            message["error"] = error

        try:
            self.client.publish(self.response_topic, json.dumps(message), qos=1)
            logger.debug(f"📤 Response published: {command} ok={ok}")
        except Exception as e:
            logger.error(f"❌ Error publishing response for {command}: {e}")
        return message

    # ===== MQTT Callbacks (run in MQTT thread) =====

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Connection failed (rc={reason_code})")
            self._connected.clear()
            return

        logger.info(f"✅ Connected to broker (rc={reason_code})")
        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Subscribed to: {self.command_topic} (QoS 1)")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        if reason_code != 0:
            logger.warning(f"⚠️ Unexpected disconnection (rc={reason_code})")
        else:
            logger.info("✅ Disconnected from broker")
        self._connected.clear()

    def _on_message(self, client, userdata, msg):
        try:
            payload = msg.payload.decode('utf-8')
            logger.debug(f"📦 Command received: {payload}")
            self.handle_command(json.loads(payload))

        except json.JSONDecodeError as e:
            logger.error(f"❌ Error decoding JSON: {msg.payload} ({e})")
        except Exception as e:
            logger.error(f"❌ Error processing message: {e}", exc_info=True)

    def handle_command(self, command_data: Dict[str, Any]) -> None:
        """Route a decoded command payload to its registered handler."""
        command = str(command_data.get('command', '')).lower()

        if not command:
            logger.warning("⚠️ Empty command received")
            return

        logger.info(f"🎯 Executing command: {command}")
        try:
            self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_response(
                command, command_data.get('request_id'), ok=False, error=str(e)
            )
