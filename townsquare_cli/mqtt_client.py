"""
MQTT client wrapper for sending admin commands to the room service.

Handles MQTT connection, publishing, waiting for the matching response,
and disconnection.
"""

import json
import threading
import uuid
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """
    MQTT client for sending admin commands to the room service.

    Publishes commands to the control plane topic with QoS 1 and, when a
    response topic is given, waits for the response carrying the same
    request_id.
    """

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        """
        Initialize MQTT command client.

        Args:
            broker: MQTT broker host
            port: MQTT broker port
            username: Optional MQTT username
            password: Optional MQTT password
        """
        self.broker = broker
        self.port = port
        self.username = username
        self.password = password

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)

        if username and password:
            self.client.username_pw_set(username, password)

        self._response: Optional[Dict[str, Any]] = None
        self._response_ready = threading.Event()
        self._request_id: Optional[str] = None

    def _on_message(self, client, userdata, msg):
        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return

        if data.get('request_id') == self._request_id:
            self._response = data
            self._response_ready.set()

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        response_topic: Optional[str] = None,
        timeout: float = 5.0
    ) -> Optional[Dict[str, Any]]:
        """
        Send command to MQTT topic.

        Args:
            topic: MQTT topic (e.g., "townsquare/control/town_01/commands")
            command: Command dictionary (will be JSON serialized)
            qos: Quality of Service (default: 1 for control commands)
            response_topic: Topic to wait on for the response (None: don't wait)
            timeout: Seconds to wait for the response

        Returns:
            The response message, or None if not waiting / timed out

        Raises:
            ConnectionError: If unable to connect to MQTT broker
            ValueError: If command serialization fails
        """
        command = dict(command)
        self._request_id = command.setdefault('request_id', uuid.uuid4().hex)
        self._response = None
        self._response_ready.clear()

        try:
            payload = json.dumps(command)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

        try:
            self.client.connect(self.broker, self.port, keepalive=60)
        except (ConnectionRefusedError, OSError):
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            )

        self.client.loop_start()
        try:
            if response_topic:
                self.client.on_message = self._on_message
                # same connection: the broker handles the subscribe before the publish
                self.client.subscribe(response_topic, qos=1)
            result = self.client.publish(topic, payload, qos=qos)
            result.wait_for_publish(timeout=timeout)

            print(f"✅ Command sent: {command.get('command', 'unknown')}")

            if response_topic and self._response_ready.wait(timeout=timeout):
                return self._response
            return None
        finally:
            self.client.loop_stop()
            self.client.disconnect()
