"""
Logo Downloader for the billboard logo sync.
Mirrors the active logos of the usable manifest into the local download directory.
"""

import hashlib
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import unquote, urlparse

import requests

from .manifest import LogoEntry, Manifest
from .manifest_fetcher import local_file_path
from src.common.logger import setup_logger

logger = setup_logger(__name__)


class LogoDownloader:
    """Downloads logo files and tracks where each logo lives on disk."""

    # Download timeout in seconds
    DOWNLOAD_TIMEOUT = 30

    def __init__(self, download_path: str, timeout: float = DOWNLOAD_TIMEOUT):
        """
        Initialize the downloader.

        Args:
            download_path: Base download directory; logos go in <download_path>/logos
            timeout: Seconds before a logo download is abandoned
        """
        self.logo_dir = Path(download_path) / "logos"
        self.timeout = timeout

        self._lock = threading.Lock()
        self._paths: Dict[str, Path] = {}

    def ensure_directory(self) -> None:
        """Create the logo directory if missing."""
        if not self.logo_dir.exists():
            self.logo_dir.mkdir(parents=True, exist_ok=True)
            logger.info("Created logo directory: %s", self.logo_dir)

    @staticmethod
    def local_filename(logo: LogoEntry) -> str:
        """Filename used on disk: manifest filename, URL basename, then <id>.png."""
        name = Path(logo.filename).name if logo.filename else ''
        if not name:
            name = Path(unquote(urlparse(logo.url).path)).name
        if not name:
            name = f"{logo.id}.png"
        return name

    def local_path(self, logo: LogoEntry) -> Path:
        """Path on disk for a logo."""
        return self.logo_dir / self.local_filename(logo)

    def sync(self, manifest: Manifest, previous: Optional[Manifest] = None) -> Dict[str, Path]:
        """
        Download every active logo that is new or changed.

        Args:
            manifest: Usable manifest
            previous: Previous usable manifest, used to skip unchanged logos

        Returns:
            Map of logo id to local path for active logos available on disk
        """
        self.ensure_directory()

        available: Dict[str, Path] = {}
        downloaded = 0
        failed = 0

        for logo in manifest.active_logos:
            path = self.local_path(logo)
            old = previous.get_logo(logo.id) if previous else None

            if self._is_up_to_date(logo, old, path):
                logger.debug("Logo %s is up to date, skipping download", logo.id)
                available[logo.id] = path
                continue

            if self.download(logo, path):
                available[logo.id] = path
                downloaded += 1
            else:
                failed += 1

        with self._lock:
            self._paths = dict(available)

        logger.info(
            "Logo sync complete - available: %d, downloaded: %d, failed: %d",
            len(available),
            downloaded,
            failed
        )
        return available

    def _is_up_to_date(self, logo: LogoEntry, old: Optional[LogoEntry], path: Path) -> bool:
        """Check if the local file can be reused."""
        if not path.exists():
            return False

        if logo.checksum:
            if self._verify_file_hash(path, logo.checksum):
                return True
            logger.warning("Logo hash mismatch, re-downloading: %s", path.name)
            return False

        return old is not None and old.url == logo.url

    def download(self, logo: LogoEntry, path: Optional[Path] = None) -> bool:
        """
        Download a single logo.

        Args:
            logo: Logo entry
            path: Destination (defaults to local_path(logo))

        Returns:
            True if the file was written
        """
        path = path or self.local_path(logo)
        temp_path = path.parent / f".{path.name}.tmp"

        source = local_file_path(logo.url)
        if source is not None:
            return self._copy_local(logo, Path(source), path, temp_path)

        try:
            logger.info("Downloading logo %s from %s", logo.id, logo.url)

            response = requests.get(logo.url, stream=True, timeout=self.timeout)

            if response.status_code != 200:
                logger.error(
                    "Failed to download logo %s - status: %d",
                    logo.id,
                    response.status_code
                )
                return False

            # Download to temp file first
            with open(temp_path, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    if chunk:
                        f.write(chunk)

            temp_path.replace(path)

            logger.info("Downloaded logo %s: %s", logo.id, path)
            return True

        except requests.Timeout:
            logger.error("Timeout downloading logo: %s", logo.id)
            self._cleanup_temp_file(temp_path)
            return False
        except requests.RequestException as e:
            logger.error("Download failed for logo %s: %s", logo.id, e)
            self._cleanup_temp_file(temp_path)
            return False
        except OSError as e:
            logger.error("IO error downloading logo %s: %s", logo.id, e)
            self._cleanup_temp_file(temp_path)
            return False

    def _copy_local(self, logo: LogoEntry, source: Path, path: Path, temp_path: Path) -> bool:
        """Copy a logo stored on the device into the logo directory."""
        if source.resolve() == path.resolve():
            return path.is_file()

        try:
            shutil.copyfile(source, temp_path)
            temp_path.replace(path)
            logger.info("Copied local logo %s: %s", logo.id, path)
            return True
        except OSError as e:
            logger.error("Could not copy local logo %s from %s: %s", logo.id, source, e)
            self._cleanup_temp_file(temp_path)
            return False

    def _cleanup_temp_file(self, temp_path: Path) -> None:
        """Remove a temporary file if it exists."""
        try:
            if temp_path.exists():
                temp_path.unlink()
        except OSError as e:
            logger.debug("Could not remove temp file %s: %s", temp_path, e)

    def _verify_file_hash(self, file_path: Path, expected_hash: str) -> bool:
        """
        Verify a file's SHA256 hash.

        Args:
            file_path: Path to file
            expected_hash: Expected SHA256 hash

        Returns:
            True if hash matches
        """
        try:
            sha256 = hashlib.sha256()
            with open(file_path, 'rb') as f:
                for chunk in iter(lambda: f.read(8192), b''):
                    sha256.update(chunk)

            return sha256.hexdigest().lower() == expected_hash.lower()

        except OSError as e:
            logger.warning("Hash verification failed for %s: %s", file_path, e)
            return False

    def get_cached_path(self, logo_id: str) -> Optional[Path]:
        """Local path of a logo from the last sync."""
        with self._lock:
            return self._paths.get(logo_id)

    @property
    def cached_count(self) -> int:
        """Number of logos available locally."""
        with self._lock:
            return len(self._paths)

    def clear(self) -> None:
        """Forget local paths (files stay on disk)."""
        with self._lock:
            self._paths.clear()

    def cleanup_orphaned_files(self, manifest: Manifest) -> List[str]:
        """
        Remove logo files no active logo refers to.

        Returns:
            List of removed filenames
        """
        required = {self.local_filename(logo) for logo in manifest.active_logos}
        removed = []

        if not self.logo_dir.exists():
            return removed

        for file_path in self.logo_dir.glob('*'):
            if not file_path.is_file() or file_path.name in required:
                continue
            # Skip hidden and temp files
            if file_path.name.startswith('.'):
                continue

            try:
                file_path.unlink()
                removed.append(file_path.name)
                logger.info("Removed orphaned logo file: %s", file_path.name)
            except OSError as e:
                logger.error("Could not remove %s: %s", file_path.name, e)

        return removed
