"""
Billboard sync application.
Wires the logo manifest service, sensor feed and display bridge together.
"""

import signal
import threading
from typing import Optional

from .config import DisplayConfig, ManifestSettings, SensorSettings
from .display_bridge import DisplayBridge
from .logo_manifest_service import LogoManifestService
from .sensor_feed import SensorFeed
from src.common.config import Config, get_config
from src.common.ipc import MessagePublisher
from src.common.logger import setup_logger

logger = setup_logger(__name__)


class BillboardSyncApp:
    """Owns the sync services for one billboard device."""

    def __init__(self, config: Config, publish: bool = True):
        """
        Build services from config.

        Args:
            config: Application config
            publish: Forward updates to the display process over ZeroMQ

        Raises:
            ConfigError: If required settings are missing
        """
        self.config = config
        self.manifest_settings = ManifestSettings.from_config(config)
        self.sensor_settings = SensorSettings.from_config(config)

        self.display_config = DisplayConfig(config.get('display.config_dir'))
        self.logo_service = LogoManifestService(
            self.manifest_settings,
            display_config=self.display_config
        )

        self.sensor_feed: Optional[SensorFeed] = None
        if self.sensor_settings.enabled:
            self.sensor_feed = SensorFeed(self.sensor_settings)

        self.bridge: Optional[DisplayBridge] = None
        if publish:
            publisher = MessagePublisher(port=config.ipc_port, service_name=DisplayBridge.SERVICE_NAME)
            self.bridge = DisplayBridge(publisher)
            self.bridge.attach(self.logo_service, self.sensor_feed)

        self._stop_event = threading.Event()

    def start(self) -> None:
        """Start all services."""
        logger.info("Billboard sync starting...")
        self.logo_service.initialize()
        if self.sensor_feed is not None:
            self.sensor_feed.connect()

    def stop(self) -> None:
        """Stop all services."""
        logger.info("Billboard sync stopping...")
        self._stop_event.set()
        self.logo_service.dispose()
        if self.sensor_feed is not None:
            self.sensor_feed.disconnect()
        if self.bridge is not None:
            self.bridge.close()

    def run(self) -> None:
        """Start and block until SIGINT/SIGTERM."""
        def _handle_signal(signum, _frame):
            logger.info("Received signal %d", signum)
            self._stop_event.set()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        self.start()
        try:
            while not self._stop_event.wait(timeout=1.0):
                pass
        finally:
            self.stop()


def main():
    """Main entry point for the billboard sync."""
    import argparse

    parser = argparse.ArgumentParser(description="Billboard logo and sensor sync")
    parser.add_argument('--config', help="Path to YAML config file")
    parser.add_argument('--manifest-url', help="Manifest URL override")
    parser.add_argument('--poll-interval', type=float, help="Seconds between manifest checks")
    parser.add_argument('--no-publish', action='store_true', help="Do not publish updates over IPC")

    args = parser.parse_args()

    config = get_config(args.config)
    if args.manifest_url:
        config.set('logo_sync.manifest_url', args.manifest_url)
    if args.poll_interval:
        config.set('logo_sync.poll_interval', args.poll_interval)

    app = BillboardSyncApp(config, publish=not args.no_publish)
    app.run()


if __name__ == "__main__":
    main()
