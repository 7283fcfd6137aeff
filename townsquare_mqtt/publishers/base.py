"""
Base MQTT Publisher
==================

Bounded Context: MQTT Infrastructure

Abstract base class for MQTT publishers.

Design:
- Connection management (connect, disconnect)
- One client, many topics: the topic is chosen per publish call
  (each participant channel has its own topic)
- Thread-safe (paho-mqtt network loop + stats lock)
- Structured logging integration

Architecture:
    BasePublisher (abstract)
        ↓
    RoomEventPublisher (concrete)
"""

import json
import threading
from abc import ABC, abstractmethod
from typing import Dict, Any, Optional

import paho.mqtt.client as mqtt

from ..logging import StructuredLogger, LogEvent


class BasePublisher(ABC):
    """
    Abstract base class for MQTT publishers.

    Subclasses implement format_message() for message-specific logic.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        default_topic: Topic used when publish() is given none
        client_id: MQTT client identifier
        qos: Quality of Service
        logger: Structured logger instance
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        client_id: str,
        logger: StructuredLogger,
        default_topic: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1
    ):
        """
        Args:
            broker_host: MQTT broker hostname
            broker_port: MQTT broker port
            client_id: Unique client identifier
            logger: Structured logger for observability
            default_topic: Topic used when publish() is given none
            username: MQTT authentication username (optional)
            password: MQTT authentication password (optional)
            qos: Quality of Service (default 1: room events must not be dropped)
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.default_topic = default_topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._message_count = 0
        self._stats_lock = threading.Lock()

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker (rc={reason_code})",
                metadata={'broker': self.broker}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker",
            metadata={'broker': self.broker, 'client_id': self.client_id}
        )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker and start the network loop.

        Returns:
            True if connected within timeout, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()

            if self._connected.wait(timeout=timeout):
                return True

            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Connection timeout",
                metadata={'timeout': timeout}
            )
            return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

    def disconnect(self) -> None:
        """Stop the network loop and disconnect the client."""
        try:
            self.client.loop_stop()
            self.client.disconnect()
            self.logger.info(
                event=LogEvent.MQTT_DISCONNECTED,
                message="Disconnected from broker",
                metadata={'message_count': self._message_count}
            )
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Error during disconnect",
                exc_info=e
            )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Return a dictionary ready for JSON serialization."""
        raise NotImplementedError("Subclasses must implement format_message()")

    def publish(
        self,
        message_data: Dict[str, Any],
        topic: Optional[str] = None,
        retain: bool = False
    ) -> bool:
        """
        Publish a pre-formatted message.

        Args:
            message_data: Message dictionary (already formatted)
            topic: Target topic (default: default_topic)
            retain: MQTT retain flag

        Returns:
            True if handed to the broker client successfully
        """
        topic = topic or self.default_topic
        if topic is None:
            raise ValueError("No topic given and no default_topic configured")

        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_PUBLISH_FAILED,
                message="Cannot publish: not connected to broker",
                metadata={'topic': topic}
            )
            return False

        try:
            payload = json.dumps(message_data)
            result = self.client.publish(
                topic=topic,
                payload=payload,
                qos=self.qos,
                retain=retain
            )

            if result.rc != mqtt.MQTT_ERR_SUCCESS:
                self.logger.warning(
                    event=LogEvent.MQTT_PUBLISH_FAILED,
                    message=f"Publish failed (rc={result.rc})",
                    metadata={'topic': topic}
                )
                return False

            with self._stats_lock:
                self._message_count += 1
                count = self._message_count

            self.logger.debug(
                event=LogEvent.MQTT_PUBLISH_SUCCESS,
                message="Published message",
                metadata={'topic': topic, 'message_count': count, 'qos': self.qos}
            )
            return True

        except (TypeError, ValueError) as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize message",
                exc_info=e,
                metadata={'topic': topic}
            )
            return False
        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing message",
                exc_info=e,
                metadata={'topic': topic}
            )
            return False

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'message_count': self._message_count,
                'connected': self._connected.is_set(),
                'default_topic': self.default_topic,
                'broker': self.broker
            }
