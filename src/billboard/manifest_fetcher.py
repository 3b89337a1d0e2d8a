"""
Manifest Fetcher for the billboard logo sync.
Reads the logo manifest from the CDN (or a local file) and parses it.
"""

import json
import time
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote, urlparse

import requests

from .manifest import Manifest, ManifestError, ManifestTimeoutError, NetworkError, ParseError
from src.common.logger import setup_logger

logger = setup_logger(__name__)


def read_local_file(path: str) -> bytes:
    """Default local file collaborator."""
    return Path(path).read_bytes()


def local_file_path(url: str) -> Optional[str]:
    """Filesystem path of a file:// URL or bare path; None for HTTP(S) URLs."""
    parsed = urlparse(url)
    if parsed.scheme in ('http', 'https'):
        return None
    return unquote(parsed.path) if parsed.scheme == 'file' else url


class ManifestFetcher:
    """
    Fetches the logo manifest.

    Remote URLs are requested with no-cache headers so CDN edge caches do not
    hide a fresh publish. file:// URLs and bare paths go through read_file.
    """

    # Request timeout in seconds
    REQUEST_TIMEOUT = 10

    NO_CACHE_HEADERS = {
        'Cache-Control': 'no-cache',
        'Pragma': 'no-cache',
    }

    def __init__(
        self,
        timeout: float = REQUEST_TIMEOUT,
        read_file: Optional[Callable[[str], bytes]] = None,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Seconds before a remote request is abandoned
            read_file: Callable(path) -> bytes used for local manifests
            session: Optional requests session (module-level requests if None)
        """
        self.timeout = timeout
        self._read_file = read_file or read_local_file
        self._session = session

    @staticmethod
    def is_remote(url: str) -> bool:
        """Check if the URL points at an HTTP(S) location."""
        return urlparse(url).scheme in ('http', 'https')

    def fetch(self, url: str) -> Manifest:
        """
        Fetch and parse the manifest.

        Args:
            url: HTTP(S) URL, file:// URL or local path

        Returns:
            Parsed Manifest

        Raises:
            ManifestTimeoutError: Remote request timed out
            NetworkError: Source unreachable or returned an error status
            ParseError: Payload is not a manifest document
        """
        if self.is_remote(url):
            payload = self._fetch_remote(url)
        else:
            payload = self._fetch_local(url)

        return self._parse(payload, url)

    def fetch_with_retry(self, url: str, attempts: int = 3, delay: float = 2.0) -> Manifest:
        """
        Fetch the manifest, retrying at a fixed delay.

        Args:
            url: Manifest location
            attempts: Total number of attempts (at least 1)
            delay: Seconds to wait between attempts

        Returns:
            Parsed Manifest

        Raises:
            ManifestError: The error from the last attempt
        """
        attempts = max(1, attempts)
        last_error: Optional[ManifestError] = None

        for attempt in range(1, attempts + 1):
            try:
                return self.fetch(url)
            except ManifestError as e:
                last_error = e
                logger.warning("Manifest fetch attempt %d/%d failed: %s", attempt, attempts, e)

            if attempt < attempts:
                logger.info("Retrying manifest fetch in %ss...", delay)
                time.sleep(delay)

        logger.error("All %d manifest fetch attempts failed", attempts)
        raise last_error

    def _fetch_remote(self, url: str) -> bytes:
        """GET the manifest over HTTP(S)."""
        getter = self._session.get if self._session is not None else requests.get

        logger.debug("Fetching manifest from %s", url)

        try:
            response = getter(url, headers=self.NO_CACHE_HEADERS, timeout=self.timeout)
        except requests.Timeout as e:
            raise ManifestTimeoutError(f"timeout after {self.timeout}s fetching {url}") from e
        except requests.RequestException as e:
            raise NetworkError(f"request failed for {url}: {e}") from e

        if response.status_code != 200:
            raise NetworkError(f"HTTP {response.status_code} fetching {url}")

        return response.content

    def _fetch_local(self, url: str) -> bytes:
        """Read a manifest stored on the device."""
        path = local_file_path(url)

        try:
            return self._read_file(path)
        except OSError as e:
            raise NetworkError(f"cannot read local manifest {path}: {e}") from e

    def _parse(self, payload: bytes, url: str) -> Manifest:
        """Decode JSON and build the manifest."""
        try:
            data = json.loads(payload)
        except (ValueError, TypeError) as e:
            raise ParseError(f"manifest at {url} is not valid JSON: {e}") from e

        manifest = Manifest.from_dict(data)

        logger.info(
            "Manifest fetched - version: %s, logos: %d, last updated: %s",
            manifest.version,
            len(manifest.logos),
            manifest.last_updated
        )
        return manifest
