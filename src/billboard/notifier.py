"""
Change notification for logo manifest updates.
Display components subscribe and are called synchronously on the sync thread.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

from .manifest import LogoEntry, Manifest
from .manifest_validator import BrokenLogo
from src.common.logger import setup_logger

logger = setup_logger(__name__)


@dataclass
class ManifestChange:
    """Payload delivered to listeners after a successful update cycle."""

    manifest: Manifest
    source: str
    added: List[LogoEntry] = field(default_factory=list)
    removed: List[LogoEntry] = field(default_factory=list)
    broken: List[BrokenLogo] = field(default_factory=list)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for IPC."""
        return {
            'manifest': self.manifest.to_dict(),
            'source': self.source,
            'timestamp': self.timestamp,
            'added': [logo.id for logo in self.added],
            'removed': [logo.id for logo in self.removed],
            'broken': [b.id for b in self.broken],
        }


Listener = Callable[[ManifestChange], None]


class ManifestNotifier:
    """Observer registry for manifest changes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener.

        Args:
            listener: Callable receiving a ManifestChange

        Returns:
            Handle that unsubscribes the listener (safe to call twice)
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def notify(self, change: ManifestChange) -> int:
        """
        Deliver a change to every listener.

        A failing listener is logged and skipped.

        Returns:
            Number of listeners that handled the change without error
        """
        with self._lock:
            listeners = list(self._listeners)

        delivered = 0
        for listener in listeners:
            try:
                listener(change)
                delivered += 1
            except Exception as e:
                logger.error("Error in manifest listener %r: %s", listener, e)

        logger.debug(
            "Manifest %s change delivered to %d/%d listener(s)",
            change.manifest.version,
            delivered,
            len(listeners)
        )
        return delivered

    def clear(self) -> None:
        """Drop all listeners."""
        with self._lock:
            self._listeners.clear()

    @property
    def listener_count(self) -> int:
        """Number of registered listeners."""
        with self._lock:
            return len(self._listeners)
