"""
Logo Manifest Service for the billboard.

Owns the logo sync pipeline: poll the CDN manifest, filter broken logos,
cache the usable manifest, download logos, persist the display config and
notify display components. Construct one instance and hand it to whatever
needs it; lifecycle is initialize/start -> stop -> dispose.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .config import DisplayConfig, ManifestSettings
from .logo_downloader import LogoDownloader
from .manifest import Manifest, ManifestError
from .manifest_cache import ManifestCache
from .manifest_fetcher import ManifestFetcher
from .manifest_validator import ManifestValidator, ValidationResult, summarize
from .notifier import Listener, ManifestChange, ManifestNotifier
from .poll_scheduler import PollScheduler
from src.common.logger import setup_logger

logger = setup_logger(__name__)


class LogoManifestService:
    """Synchronizes company logos from the CDN manifest."""

    # Seconds dispose waits for an in-flight cycle
    DISPOSE_TIMEOUT = 10.0

    def __init__(
        self,
        settings: ManifestSettings,
        display_config: Optional[DisplayConfig] = None,
        fetcher: Optional[ManifestFetcher] = None,
        validator: Optional[ManifestValidator] = None,
        cache: Optional[ManifestCache] = None,
        notifier: Optional[ManifestNotifier] = None,
        downloader: Optional[LogoDownloader] = None
    ):
        """
        Initialize the service.

        Args:
            settings: Logo sync settings
            display_config: Display config to persist the logo list into (skipped if None)
            fetcher: Manifest fetcher (built from settings if None)
            validator: Manifest validator (built from settings if None)
            cache: Manifest cache
            notifier: Change notifier
            downloader: Logo downloader (built from settings if None)
        """
        self.settings = settings
        self._display_config = display_config
        self._fetcher = fetcher or ManifestFetcher(timeout=settings.request_timeout)
        self._validator = validator or ManifestValidator(broken_patterns=settings.broken_patterns)
        self._cache = cache or ManifestCache()
        self._notifier = notifier or ManifestNotifier()
        self._downloader = downloader or LogoDownloader(settings.download_path)
        self._scheduler = PollScheduler(self._poll_cycle, name="LogoManifestPoller")

        # Sync statistics
        self._total_cycles = 0
        self._total_failures = 0
        self._last_error: Optional[str] = None

        logger.info(
            "LogoManifestService initialized - enabled: %s, manifest_url: %s, interval: %ss",
            settings.enabled,
            settings.manifest_url,
            settings.poll_interval
        )

    @property
    def cache(self) -> ManifestCache:
        """The manifest cache."""
        return self._cache

    @property
    def scheduler(self) -> PollScheduler:
        """The poll scheduler."""
        return self._scheduler

    @property
    def is_running(self) -> bool:
        """Check if periodic polling is active."""
        return self._scheduler.is_running

    def initialize(self) -> bool:
        """
        Fetch the initial manifest (with retries) and start polling.

        Polling starts even if the initial fetch fails, so a device that boots
        offline picks the manifest up once the CDN is reachable.

        Returns:
            True if the initial manifest was fetched and applied

        Raises:
            ConfigError: If enabled settings are incomplete
        """
        if not self.settings.enabled:
            logger.info("Logo sync disabled in config")
            return False

        self.settings.validate()
        try:
            self._downloader.ensure_directory()
        except OSError as e:
            logger.error("Cannot create logo directory - retrying on each sync: %s", e)

        success = False
        try:
            candidate = self._fetcher.fetch_with_retry(
                self.settings.manifest_url,
                attempts=self.settings.retry_attempts,
                delay=self.settings.retry_delay
            )
            self._apply(candidate, source="initial", force=True)
            success = True
        except ManifestError as e:
            self._record_failure(e)
            logger.error("Failed to fetch initial manifest - will keep polling: %s", e)

        self._scheduler.start(self.settings.poll_interval, run_immediately=False)
        return success

    def start(self) -> None:
        """Start polling, with an immediate first cycle."""
        if not self.settings.enabled:
            logger.info("Logo sync disabled in config - not starting")
            return
        self._scheduler.start(self.settings.poll_interval)

    def stop(self) -> None:
        """Stop polling. An in-flight cycle still completes and is applied."""
        self._scheduler.stop()

    def dispose(self) -> None:
        """Stop, let an in-flight cycle finish, then release listeners and cached state."""
        self.stop()
        if not self._scheduler.wait_for_cycle(self.DISPOSE_TIMEOUT):
            logger.warning("Manifest cycle still running after %ss - disposing anyway", self.DISPOSE_TIMEOUT)
        self._notifier.clear()
        self._downloader.clear()
        self._cache.clear()
        logger.info("LogoManifestService disposed")

    def set_poll_interval(self, seconds: float) -> None:
        """
        Change the poll interval. A running scheduler is restarted.

        Raises:
            ValueError: If seconds is not positive
        """
        if seconds <= 0:
            raise ValueError("poll interval must be positive")

        self.settings.poll_interval = seconds
        if self._scheduler.is_running:
            self._scheduler.restart(seconds)
        logger.info("Poll interval set to %ss", seconds)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns the unsubscribe handle."""
        return self._notifier.subscribe(listener)

    def run_cycle(self, source: str = "poll", force: bool = False) -> bool:
        """
        Run one fetch -> validate -> update -> notify cycle.

        Never raises; failures are counted in the cache and logged.

        Args:
            source: Label passed to listeners ("poll", "force", ...)
            force: Re-validate even if the manifest version is unchanged

        Returns:
            True if the manifest was fetched and applied (or is unchanged)
        """
        self._total_cycles += 1

        try:
            candidate = self._fetcher.fetch(self.settings.manifest_url)
            self._apply(candidate, source=source, force=force)
            return True
        except ManifestError as e:
            self._record_failure(e)
            return False
        except Exception as e:
            logger.error("Unexpected error in manifest cycle: %s", e)
            self._record_failure(e)
            return False

    def force_sync(self) -> bool:
        """
        Re-fetch and re-validate now, ignoring the version check.

        Returns:
            True on success, False on failure or if a cycle is already running
        """
        logger.info("Force sync requested")
        result = self._scheduler.run_now(lambda: self.run_cycle(source="force", force=True))
        return bool(result)

    def _poll_cycle(self) -> bool:
        """Scheduled tick."""
        return self.run_cycle(source="poll")

    def _apply(self, candidate: Manifest, source: str, force: bool = False) -> Optional[ValidationResult]:
        """Validate the candidate and publish it if it changed."""
        previous = self._cache.get()

        if not force and self._validator.is_unchanged(candidate, previous):
            self._cache.touch(datetime.now())
            logger.info("Manifest unchanged (version %s)", candidate.version)
            return None

        logger.info(
            "New manifest version detected: %s -> %s",
            previous.version if previous else None,
            candidate.version
        )

        result = self._validator.validate(candidate, previous)
        logger.debug("Validation result: %s", summarize(result))
        self._cache.update(result.usable, datetime.now())
        self._last_error = None

        # Logo files are best effort; the manifest is announced either way
        self._sync_logos(result.usable, previous)
        self._update_display_config(result.usable)

        self._notifier.notify(ManifestChange(
            manifest=result.usable,
            source=source,
            added=result.added,
            removed=result.removed,
            broken=result.broken,
        ))
        return result

    def _sync_logos(self, manifest: Manifest, previous: Optional[Manifest]) -> None:
        """Download new logos and drop files no active logo uses."""
        try:
            self._downloader.sync(manifest, previous)
            self._downloader.cleanup_orphaned_files(manifest)
        except OSError as e:
            logger.error("Failed to sync logo files: %s", e)

    def _update_display_config(self, manifest: Manifest) -> None:
        """Write the downloaded logo list and rotation settings to display.json."""
        if self._display_config is None:
            return

        try:
            logo_images = []
            for logo in manifest.active_logos:
                path = self._downloader.get_cached_path(logo.id)
                if path is None:
                    continue
                logo_images.append({
                    'id': logo.id,
                    'name': logo.name,
                    'path': str(path),
                    'size': logo.size,
                    'type': logo.type,
                    'checksum': logo.checksum,
                    'source': 'cdn_sync',
                })

            self._display_config.logo_images = logo_images
            if manifest.logo_mode:
                self._display_config.logo_mode = manifest.logo_mode
            if manifest.logo_loop_duration:
                self._display_config.logo_loop_duration = manifest.logo_loop_duration
            self._display_config.manifest_version = manifest.version
            self._display_config.save()

            logger.info(
                "Display config updated - logos: %d, mode: %s, loop: %ss",
                len(logo_images),
                self._display_config.logo_mode,
                self._display_config.logo_loop_duration
            )

        except (OSError, ValueError) as e:
            logger.error("Failed to update display config: %s", e)

    def _record_failure(self, error: Exception) -> None:
        """Count a failed cycle; the cached manifest stays in place."""
        retry_count = self._cache.record_failure()
        self._total_failures += 1
        self._last_error = str(error)
        logger.warning(
            "Manifest sync failed (%d consecutive) - keeping cached manifest: %s",
            retry_count,
            error
        )

    def get_current_manifest(self) -> Optional[Manifest]:
        """Last usable manifest."""
        return self._cache.get()

    def get_cached_logo_path(self, logo_id: str) -> Optional[str]:
        """Local file path of a downloaded logo."""
        path = self._downloader.get_cached_path(logo_id)
        return str(path) if path else None

    def get_status(self) -> Dict[str, Any]:
        """
        Get sync status for diagnostics.

        Returns:
            Dictionary with service, cache and scheduler state
        """
        manifest = self._cache.get()
        last_fetch = self._cache.last_fetch_time

        return {
            'enabled': self.settings.enabled,
            'polling': self._scheduler.is_running,
            'manifest_url': self.settings.manifest_url,
            'poll_interval': self.settings.poll_interval,
            'version': manifest.version if manifest else None,
            'last_update': manifest.last_updated if manifest else None,
            'logo_count': len(manifest.logos) if manifest else 0,
            'cache_size': self._downloader.cached_count,
            'retry_count': self._cache.retry_count,
            'last_fetch_time': last_fetch.isoformat() if last_fetch else None,
            'last_error': self._last_error,
            'total_cycles': self._total_cycles,
            'total_failures': self._total_failures,
            'listeners': self._notifier.listener_count,
        }

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"LogoManifestService(manifest_url={self.settings.manifest_url}, "
            f"interval={self.settings.poll_interval}s)"
        )
