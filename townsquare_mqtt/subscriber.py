"""
MQTT Inbound Subscriber
======================

Bounded Context: Participant message consumption

Receives connect / move / disconnect messages from participant clients and
hands typed InboundMessage objects to a callback.

Design:
- Callback-based (callback runs in the paho network thread; the room
  service only enqueues, all room work happens on its dispatch thread)
- Automatic deserialization with error handling (bad messages are logged
  and dropped, the subscription keeps running)

Architecture:
    Client → MQTT Broker → InboundSubscriber → on_inbound → RoomService queue

Example:
    >>> subscriber = InboundSubscriber(
    ...     broker_host="localhost",
    ...     on_inbound=service.submit_inbound,
    ...     logger=create_logger("subscriber"),
    ... )
    >>> subscriber.connect()
    >>> subscriber.start()
"""

import json
import threading
from typing import Callable, Optional

import paho.mqtt.client as mqtt

from .schemas import INBOUND_TOPIC_FILTER, InboundMessage
from .logging import StructuredLogger, LogEvent


class InboundSubscriber:
    """
    MQTT subscriber for inbound participant messages.

    Attributes:
        broker_host: MQTT broker hostname
        broker_port: MQTT broker port
        topic_filter: Wildcard subscription for session inbound topics
        client_id: MQTT client identifier
        logger: Structured logger instance
        on_inbound: Callback for each valid InboundMessage
    """

    def __init__(
        self,
        broker_host: str,
        on_inbound: Callable[[InboundMessage], None],
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "townsquare_inbound",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 1,
        topic_filter: str = INBOUND_TOPIC_FILTER
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic_filter = topic_filter
        self.client_id = client_id
        self.logger = logger
        self.qos = qos
        self.on_inbound = on_inbound

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._received = 0
        self._rejected = 0

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
        # Subscribing here also restores the subscription after a reconnect
        client.subscribe(self.topic_filter, qos=self.qos)
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Connected to MQTT broker and subscribed to inbound topics",
            metadata={'broker': self.broker, 'topic_filter': self.topic_filter}
        )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        try:
            data = json.loads(msg.payload.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            self._count(rejected=True)
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode inbound message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )
            return

        self.handle_message(msg.topic, data)

    def handle_message(self, topic: str, data: dict) -> bool:
        """
        Validate a decoded inbound message and invoke the callback.

        Returns:
            True if the message was valid and delivered
        """
        try:
            inbound = InboundMessage.from_mqtt(topic, data)
        except (ValueError, TypeError) as e:
            self._count(rejected=True)
            self.logger.error(
                event=LogEvent.SCHEMA_VALIDATION_ERROR,
                message="Inbound message failed schema validation",
                exc_info=e,
                metadata={'topic': topic, 'data': data}
            )
            return False

        self._count(rejected=False)
        self.logger.debug(
            event=LogEvent.INBOUND_RECEIVED,
            message=f"Received {inbound.type.value} message",
            metadata={'room_id': inbound.room_id, 'type': inbound.type.value}
        )

        try:
            self.on_inbound(inbound)
        except Exception as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Error handling inbound message",
                exc_info=e,
                metadata={'topic': topic}
            )
            return False
        return True

    def _count(self, rejected: bool) -> None:
        with self._stats_lock:
            if rejected:
                self._rejected += 1
            else:
                self._received += 1

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker.

        Returns:
            True if connected successfully, False otherwise
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

    def start(self) -> None:
        """Mark the subscriber as running (the network loop starts in connect())."""
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Cannot start: not connected to broker"
            )
            return

        self._running = True
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Subscriber started (listening for inbound messages)",
            metadata={'topic_filter': self.topic_filter}
        )

    def stop(self) -> None:
        """Stop the network loop and disconnect."""
        self._running = False
        self.client.loop_stop()
        self.client.disconnect()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict:
        with self._stats_lock:
            return {
                'inbound_received': self._received,
                'inbound_rejected': self._rejected,
                'connected': self._connected.is_set(),
                'running': self._running,
                'topic_filter': self.topic_filter,
                'broker': self.broker
            }
