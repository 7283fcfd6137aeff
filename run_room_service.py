#!/usr/bin/env python3
"""
Room Service - Entry Point
==========================

This script starts the Townsquare room service, which:
- Hosts rooms (participants, positions, conversation zones)
- Accepts participant event channels over MQTT
- Publishes room events to every connected participant
- Responds to admin commands via MQTT control plane

Usage:
    python run_room_service.py --config config/room_service.yaml

Architecture:
    - RoomService: Main orchestrator (townsquare_server)
    - MQTTControlPlane: Admin command handler (townsquare_control)
    - RoomEventPublisher: Publishes room events (townsquare_mqtt)
    - InboundSubscriber: Receives participant messages (townsquare_mqtt)

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create control plane, publisher and subscriber
    4. Create RoomService
    5. Setup service (command handlers, seeded rooms)
    6. Start service (non-blocking)
    7. Wait for stop signal (Ctrl+C or SIGTERM)
    8. Graceful shutdown (every room receives roomClosing)

Signals:
    - SIGTERM: Graceful shutdown
    - SIGINT (Ctrl+C): Graceful shutdown

Logs:
    - Console: INFO level
    - File: logs/room_service.log (INFO level)
"""

import argparse
import signal
import sys
import logging
from pathlib import Path
from typing import Optional

from townsquare_server import RoomService, ServiceConfig
from townsquare_control import MQTTControlPlane
from townsquare_mqtt import InboundSubscriber, RoomEventPublisher, create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Setup logging for the room service.

    Args:
        log_file: Optional path to log file (default: logs/room_service.log)
        level: Root log level

    Returns:
        Logger instance for the service
    """
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class RoomServiceApp:
    """
    Main application wrapper for RoomService.

    Handles:
    - Configuration loading
    - Component initialization (control plane, publisher, subscriber)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None, debug: bool = False):
        self.config_path = config_path
        self.log_file = log_file
        self.logger = setup_logging(log_file, logging.DEBUG if debug else logging.INFO)
        self.debug = debug

        # Components (initialized in setup())
        self.config: Optional[ServiceConfig] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.event_publisher: Optional[RoomEventPublisher] = None
        self.inbound_subscriber: Optional[InboundSubscriber] = None
        self.service: Optional[RoomService] = None

        # Signal handling
        self._shutdown_requested = False

    def setup(self):
        """
        Setup all components.

        Steps:
        1. Load configuration from YAML
        2. Create control plane
        3. Create event publisher
        4. Create RoomService and inbound subscriber
        5. Setup service (command handlers, seeded rooms)
        """
        self.logger.info("=" * 80)
        self.logger.info("🚀 Townsquare Room Service - Starting")
        self.logger.info("=" * 80)

        # 1. Load configuration
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = ServiceConfig.from_yaml(self.config_path)
        self.logger.info(f"✅ Configuration loaded (service_id={self.config.service_id})")

        mqtt_config = self.config.mqtt_config
        mqtt_level = logging.DEBUG if self.debug else logging.INFO

        # 2. Create control plane
        self.logger.info("🔌 Creating MQTT control plane")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=self.config.command_topic,
            status_topic=self.config.status_topic,
            response_topic=self.config.response_topic,
            client_id=f"room_service_{self.config.service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )
        self.logger.info(f"  - Command topic: {self.config.command_topic}")
        self.logger.info(f"  - Response topic: {self.config.response_topic}")
        self.logger.info("✅ Control plane created")

        # 3. Create event publisher
        self.logger.info("📤 Creating room event publisher")
        self.event_publisher = RoomEventPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            logger=create_logger(component="room_events", level=mqtt_level),
            client_id=f"room_events_{self.config.service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        self.logger.info("✅ Publisher created")

        # 4. Create service + subscriber
        self.logger.info("🏗️  Creating room service")
        self.service = RoomService(
            config=self.config,
            control_plane=self.control_plane,
            event_publisher=self.event_publisher,
        )
        self.inbound_subscriber = InboundSubscriber(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            on_inbound=self.service.submit_inbound,
            logger=create_logger(component="subscriber", level=mqtt_level),
            client_id=f"room_inbound_{self.config.service_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        self.service.inbound_subscriber = self.inbound_subscriber
        self.logger.info(f"  - Inbound topics: {self.inbound_subscriber.topic_filter}")
        self.logger.info("✅ Service created")

        # 5. Setup service
        self.logger.info("⚙️  Setting up room service")
        self.service.setup()
        self.logger.info("✅ Setup complete")

        self.logger.info("=" * 80)

    def run(self):
        """
        Run the room service.

        Blocks until shutdown is requested (via signal or exception).
        """
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        try:
            self.service.start()

            self.logger.info("✅ Service started successfully")
            self.logger.info("Press Ctrl+C to stop")
            self.logger.info("=" * 80)

            self.service.wait()

        except KeyboardInterrupt:
            self.logger.info("\n⚠️  KeyboardInterrupt received")
            self.shutdown()

        except Exception as e:
            self.logger.error(f"❌ Service error: {e}", exc_info=True)
            self.shutdown()
            sys.exit(1)

    def shutdown(self):
        """
        Graceful shutdown of all components.

        RoomService.stop() closes every room, then disconnects the
        subscriber, publisher and control plane.
        """
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True

        self.logger.info("=" * 80)
        self.logger.info("🛑 Shutting down room service")
        self.logger.info("=" * 80)

        if self.service:
            try:
                self.service.stop()
                self.logger.info("✅ Service stopped")
            except Exception as e:
                self.logger.error(f"❌ Error stopping service: {e}")

        self.logger.info("=" * 80)
        self.logger.info("✅ Shutdown complete")
        self.logger.info("=" * 80)

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"\n⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()
        sys.exit(0)


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args():
    """
    Parse command-line arguments.

    Returns:
        argparse.Namespace with parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Townsquare Room Service - rooms, zones and participant events over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with default config
  python run_room_service.py --config config/room_service.yaml

  # Start with custom log file
  python run_room_service.py --config config/room_service.yaml --log-file logs/custom.log

  # Start without file logging (console only), verbose
  python run_room_service.py --config config/room_service.yaml --no-log-file --debug
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        required=True,
        help='Path to room service configuration YAML file'
    )

    parser.add_argument(
        '--log-file',
        type=Path,
        default=Path('logs/room_service.log'),
        help='Path to log file (default: logs/room_service.log)'
    )

    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Disable file logging (console only)'
    )

    parser.add_argument(
        '--debug',
        action='store_true',
        help='Log at DEBUG level (includes every published event)'
    )

    return parser.parse_args()


def main():
    """
    Main entry point.

    Workflow:
    1. Parse CLI arguments
    2. Create RoomServiceApp
    3. Setup components
    4. Run service (blocks until stopped)
    """
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = RoomServiceApp(
        config_path=args.config,
        log_file=log_file,
        debug=args.debug,
    )

    try:
        app.setup()
        app.run()
    except Exception as e:
        print(f"❌ Fatal error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
