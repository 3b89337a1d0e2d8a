"""
Display Bridge - forwards logo manifest changes and sensor readings
to the display process over ZeroMQ.
"""

from typing import Callable, List, Optional

from .logo_manifest_service import LogoManifestService
from .notifier import ManifestChange
from .sensor_feed import SensorData, SensorFeed
from src.common.ipc import MessagePublisher, MessageType
from src.common.logger import setup_logger

logger = setup_logger(__name__)


class DisplayBridge:
    """Subscribes to the sync services and republishes their updates."""

    SERVICE_NAME = "billboard_sync"

    def __init__(self, publisher: MessagePublisher):
        """
        Args:
            publisher: ZeroMQ publisher the display process is subscribed to
        """
        self._publisher = publisher
        self._unsubscribers: List[Callable[[], None]] = []
        self._published = 0

    @property
    def published_count(self) -> int:
        """Number of messages sent."""
        return self._published

    def attach(
        self,
        logo_service: Optional[LogoManifestService] = None,
        sensor_feed: Optional[SensorFeed] = None
    ) -> None:
        """Subscribe to the given services."""
        if logo_service is not None:
            self._unsubscribers.append(logo_service.subscribe(self.on_manifest_change))
        if sensor_feed is not None:
            self._unsubscribers.append(sensor_feed.subscribe(self.on_sensor_data))

    def detach(self) -> None:
        """Unsubscribe from every attached service."""
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def on_manifest_change(self, change: ManifestChange) -> None:
        """Forward a manifest change (hot-reload trigger)."""
        self._publisher.publish(MessageType.MANIFEST_UPDATE, change.to_dict())
        self._published += 1
        logger.info(
            "Forwarded manifest %s to display (%d logos, source: %s)",
            change.manifest.version,
            len(change.manifest.logos),
            change.source
        )

    def on_sensor_data(self, data: SensorData) -> None:
        """Forward the latest sensor readings."""
        self._publisher.publish(MessageType.SENSOR_UPDATE, data.to_dict())
        self._published += 1

    def close(self) -> None:
        """Detach and close the publisher."""
        self.detach()
        self._publisher.close()
