"""
Manifest Validator for the billboard logo sync.

Filters broken logo entries out of a freshly fetched manifest and diffs the
usable result against the last known good manifest.

Entry checks run in this order:
    1. malformed record (no id / url)       -> broken
    2. duplicate id (later occurrence)      -> broken
    3. URL matches a dead-link pattern      -> broken, unless it is a GitHub
                                               blob link whose raw form responds
    4. reachability probe fails             -> rewrite blob link and probe once
                                               more, else broken
"""

import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

import requests

from .manifest import LogoEntry, Manifest
from .manifest_fetcher import local_file_path
from src.common.logger import setup_logger

logger = setup_logger(__name__)

# Known-dead URL shapes. A placeholder heuristic, override via config.
DEFAULT_BROKEN_PATTERNS = (
    "/blob/",
    "company-logo-3.png",
)

_GITHUB_BLOB_RE = re.compile(r"^(https?://)(?:www\.)?github\.com/([^/]+)/([^/]+)/blob/(.+)$")


def to_raw_url(url: str) -> Optional[str]:
    """
    Convert a browsable GitHub blob link to its raw-content form.

    Returns:
        The raw URL, or None if the URL is not a blob link
    """
    match = _GITHUB_BLOB_RE.match(url)
    if not match:
        return None
    scheme, owner, repo, rest = match.groups()
    return f"{scheme}raw.githubusercontent.com/{owner}/{repo}/{rest}"


def probe_url(url: str, timeout: float = 5) -> bool:
    """
    Lightweight existence check (HEAD, redirects followed).
    Local references are checked on disk.
    """
    path = local_file_path(url)
    if path is not None:
        return Path(path).is_file()

    try:
        response = requests.head(url, timeout=timeout, allow_redirects=True)
        return 200 <= response.status_code < 400
    except requests.RequestException as e:
        logger.debug("Probe failed for %s: %s", url, e)
        return False


@dataclass
class BrokenLogo:
    """A manifest entry excluded from the usable set."""

    reason: str
    entry: Optional[LogoEntry] = None
    record: Any = None

    @property
    def id(self) -> Optional[str]:
        """Id of the broken entry, if it had one."""
        if self.entry is not None:
            return self.entry.id
        if isinstance(self.record, dict) and self.record.get('id') is not None:
            return str(self.record['id'])
        return None


@dataclass
class ValidationResult:
    """Outcome of validating a candidate manifest."""

    usable: Manifest
    added: List[LogoEntry] = field(default_factory=list)
    removed: List[LogoEntry] = field(default_factory=list)
    broken: List[BrokenLogo] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """True if any logo was added or removed."""
        return bool(self.added or self.removed)


class ManifestValidator:
    """Validates candidate manifests and computes logo diffs."""

    def __init__(
        self,
        broken_patterns: Optional[Iterable[str]] = None,
        probe: Optional[Callable[[str], bool]] = None
    ):
        """
        Initialize the validator.

        Args:
            broken_patterns: Substrings marking a dead URL (defaults to DEFAULT_BROKEN_PATTERNS)
            probe: Callable(url) -> bool reachability check (defaults to probe_url)
        """
        patterns = DEFAULT_BROKEN_PATTERNS if broken_patterns is None else broken_patterns
        self.broken_patterns: Sequence[str] = tuple(p for p in patterns if p)
        self._probe = probe or probe_url

    @staticmethod
    def is_unchanged(candidate: Manifest, previous: Optional[Manifest]) -> bool:
        """Check if the candidate carries the same version as the previous manifest."""
        return previous is not None and bool(candidate.version) and candidate.version == previous.version

    def matches_broken_pattern(self, url: str) -> bool:
        """Check a URL against the dead-link patterns."""
        return any(pattern in url for pattern in self.broken_patterns)

    def validate(self, candidate: Manifest, previous: Optional[Manifest]) -> ValidationResult:
        """
        Filter broken entries and diff against the previous manifest.

        Never raises for individual entries; they end up in `broken`.

        Args:
            candidate: Newly fetched manifest
            previous: Last known good manifest, or None

        Returns:
            ValidationResult with the usable manifest and added/removed/broken sets
        """
        broken: List[BrokenLogo] = [
            BrokenLogo(reason="malformed record", record=record)
            for record in candidate.malformed
        ]

        usable_logos: List[LogoEntry] = []
        seen_ids = set()

        for logo in candidate.logos:
            if logo.id in seen_ids:
                broken.append(BrokenLogo(reason="duplicate id", entry=logo))
                continue
            seen_ids.add(logo.id)

            checked = self._check_entry(logo)
            if isinstance(checked, BrokenLogo):
                broken.append(checked)
            else:
                usable_logos.append(checked)

        usable = Manifest(
            version=candidate.version,
            logos=usable_logos,
            last_updated=candidate.last_updated,
            settings=dict(candidate.settings),
        )

        added, removed = self.diff(usable, previous)

        if broken:
            logger.warning(
                "Manifest %s: %d broken logo(s) excluded: %s",
                candidate.version,
                len(broken),
                ", ".join(f"{b.id} ({b.reason})" for b in broken)
            )

        logger.info(
            "Manifest %s validated - usable: %d, added: %d, removed: %d",
            candidate.version,
            len(usable_logos),
            len(added),
            len(removed)
        )

        return ValidationResult(usable=usable, added=added, removed=removed, broken=broken)

    @staticmethod
    def diff(usable: Manifest, previous: Optional[Manifest]):
        """
        Compute added and removed logos keyed by id.

        Returns:
            Tuple (added, removed) in manifest order
        """
        if previous is None:
            return list(usable.logos), []

        previous_ids = set(previous.logo_ids)
        current_ids = set(usable.logo_ids)

        added = [logo for logo in usable.logos if logo.id not in previous_ids]
        removed = [logo for logo in previous.logos if logo.id not in current_ids]
        return added, removed

    def _check_entry(self, logo: LogoEntry):
        """Return the (possibly rewritten) entry, or a BrokenLogo."""
        raw_url = to_raw_url(logo.url)

        if self.matches_broken_pattern(logo.url):
            # A blob link is salvageable if its raw form is clean and responds
            if raw_url and not self.matches_broken_pattern(raw_url) and self._safe_probe(raw_url):
                logger.info("Rewrote logo %s URL to %s", logo.id, raw_url)
                return replace(logo, url=raw_url)
            return BrokenLogo(reason="dead link pattern", entry=logo)

        if self._safe_probe(logo.url):
            return logo

        if raw_url and self._safe_probe(raw_url):
            logger.info("Rewrote logo %s URL to %s", logo.id, raw_url)
            return replace(logo, url=raw_url)

        return BrokenLogo(reason="unreachable", entry=logo)

    def _safe_probe(self, url: str) -> bool:
        """Run the probe; a raising probe counts as unreachable."""
        try:
            return bool(self._probe(url))
        except Exception as e:
            logger.warning("Reachability check raised for %s: %s", url, e)
            return False


def summarize(result: ValidationResult) -> Dict[str, Any]:
    """Compact dict view of a validation result, for logs and IPC."""
    return {
        'version': result.usable.version,
        'usable': result.usable.logo_ids,
        'added': [logo.id for logo in result.added],
        'removed': [logo.id for logo in result.removed],
        'broken': [{'id': b.id, 'reason': b.reason} for b in result.broken],
    }
