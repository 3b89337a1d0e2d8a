"""
In-memory holder of the last valid logo manifest.
Lives for the process lifetime; the CDN manifest is the source of truth.
"""

import threading
from datetime import datetime
from typing import Any, Dict, Optional

from .manifest import Manifest


class ManifestCache:
    """
    Single-writer, multi-reader cache of the last usable manifest.

    A failed fetch never clears the cached manifest (stale-but-valid).
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._manifest: Optional[Manifest] = None
        self._last_fetch_time: Optional[datetime] = None
        self._retry_count = 0

    def get(self) -> Optional[Manifest]:
        """Get the last usable manifest, or None before the first success."""
        with self._lock:
            return self._manifest

    def update(self, manifest: Manifest, fetch_time: Optional[datetime] = None) -> None:
        """
        Replace the cached manifest and reset the failure counter.

        Args:
            manifest: Manifest that passed validation
            fetch_time: When it was fetched (defaults to now)
        """
        with self._lock:
            self._manifest = manifest
            self._last_fetch_time = fetch_time or datetime.now()
            self._retry_count = 0

    def touch(self, fetch_time: Optional[datetime] = None) -> None:
        """Record a successful fetch that did not change the manifest."""
        with self._lock:
            self._last_fetch_time = fetch_time or datetime.now()
            self._retry_count = 0

    def record_failure(self) -> int:
        """
        Count a failed fetch/validate cycle.

        Returns:
            Consecutive failure count
        """
        with self._lock:
            self._retry_count += 1
            return self._retry_count

    def clear(self) -> None:
        """Forget everything (used on dispose)."""
        with self._lock:
            self._manifest = None
            self._last_fetch_time = None
            self._retry_count = 0

    @property
    def retry_count(self) -> int:
        """Consecutive failures since the last success."""
        with self._lock:
            return self._retry_count

    @property
    def last_fetch_time(self) -> Optional[datetime]:
        """Time of the last successful fetch."""
        with self._lock:
            return self._last_fetch_time

    @property
    def version(self) -> Optional[str]:
        """Version of the cached manifest."""
        with self._lock:
            return self._manifest.version if self._manifest else None

    def get_status(self) -> Dict[str, Any]:
        """Cache state for diagnostics."""
        with self._lock:
            return {
                'version': self._manifest.version if self._manifest else None,
                'logo_count': len(self._manifest.logos) if self._manifest else 0,
                'last_fetch_time': self._last_fetch_time.isoformat() if self._last_fetch_time else None,
                'retry_count': self._retry_count,
            }
