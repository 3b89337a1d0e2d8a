"""
Logo manifest data model.

The manifest is a versioned JSON document published to the logo CDN:

    {
        "version": "1.0.1718000000",
        "lastUpdated": "2024-06-10T08:00:00Z",
        "logos": [{"id": ..., "name": ..., "url": ..., "active": true, "priority": 1}],
        "settings": {"logoMode": "loop", "logoLoopDuration": 5}
    }
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


class ManifestError(Exception):
    """Base class for logo manifest errors."""
    pass


class NetworkError(ManifestError):
    """Manifest source unreachable (HTTP error, connection failure, missing file)."""
    pass


class ManifestTimeoutError(NetworkError):
    """Manifest request exceeded its time budget."""
    pass


class ParseError(ManifestError):
    """Manifest payload is not a valid manifest document."""
    pass


class ValidationError(ManifestError):
    """A single logo entry is unusable. Recorded, never fatal to the manifest."""
    pass


_FALSE_STRINGS = ("false", "0", "no", "off")


def _parse_active(value: Any) -> bool:
    """Active flag from JSON. Only explicit false values disable a logo."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    if isinstance(value, (int, float)):
        return value != 0
    return True


@dataclass
class LogoEntry:
    """A single logo asset listed in the manifest."""

    id: str
    name: str
    url: str
    active: bool = True
    priority: int = 0
    filename: str = ""
    size: int = 0
    type: str = ""
    checksum: str = ""
    uploaded_at: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogoEntry":
        """
        Build an entry from a manifest record.

        Raises:
            ValidationError: If the record is not an object or lacks id/url
        """
        if not isinstance(data, dict):
            raise ValidationError(f"logo record is not an object: {data!r}")

        logo_id = data.get('id')
        url = data.get('url')
        if logo_id in (None, ''):
            raise ValidationError("logo record has no id")
        if not isinstance(url, str) or not url:
            raise ValidationError(f"logo {logo_id} has no url")

        try:
            priority = int(data.get('priority') or 0)
        except (TypeError, ValueError):
            priority = 0

        try:
            size = int(data.get('size') or 0)
        except (TypeError, ValueError):
            size = 0

        return cls(
            id=str(logo_id),
            name=str(data.get('name') or logo_id),
            url=url,
            active=_parse_active(data.get('active', True)),
            priority=priority,
            filename=str(data.get('filename') or ''),
            size=size,
            type=str(data.get('type') or ''),
            checksum=str(data.get('checksum') or ''),
            uploaded_at=str(data.get('uploadedAt') or ''),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the manifest record format."""
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'active': self.active,
            'priority': self.priority,
            'filename': self.filename,
            'size': self.size,
            'type': self.type,
            'checksum': self.checksum,
            'uploadedAt': self.uploaded_at,
        }


@dataclass
class Manifest:
    """Versioned listing of logo assets. Order of logos is display priority."""

    version: str
    logos: List[LogoEntry] = field(default_factory=list)
    last_updated: str = ""
    settings: Dict[str, Any] = field(default_factory=dict)

    # Raw records that could not be turned into a LogoEntry
    malformed: List[Any] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Manifest":
        """
        Parse a decoded JSON document.

        Malformed logo records are kept aside in `malformed` so the validator
        can report them; only a document that is not a manifest at all fails.

        Raises:
            ParseError: If data is not an object with a logos list
        """
        if not isinstance(data, dict):
            raise ParseError("manifest is not a JSON object")

        records = data.get('logos')
        if not isinstance(records, list):
            raise ParseError("manifest has no logos list")

        logos: List[LogoEntry] = []
        malformed: List[Any] = []
        for record in records:
            try:
                logos.append(LogoEntry.from_dict(record))
            except ValidationError:
                malformed.append(record)

        settings = data.get('settings')

        return cls(
            version=str(data.get('version') or ''),
            logos=logos,
            last_updated=str(data.get('lastUpdated') or ''),
            settings=settings if isinstance(settings, dict) else {},
            malformed=malformed,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the manifest document format."""
        data: Dict[str, Any] = {
            'version': self.version,
            'lastUpdated': self.last_updated,
            'logos': [logo.to_dict() for logo in self.logos],
        }
        if self.settings:
            data['settings'] = dict(self.settings)
        return data

    def get_logo(self, logo_id: str) -> Optional[LogoEntry]:
        """Find a logo by id."""
        for logo in self.logos:
            if logo.id == logo_id:
                return logo
        return None

    @property
    def logo_ids(self) -> List[str]:
        """Ids of all logos in display order."""
        return [logo.id for logo in self.logos]

    @property
    def active_logos(self) -> List[LogoEntry]:
        """Logos eligible for display, sorted by priority (stable)."""
        return sorted(
            (logo for logo in self.logos if logo.active),
            key=lambda logo: logo.priority
        )

    @property
    def logo_mode(self) -> Optional[str]:
        """Display mode requested by the manifest (fixed, loop, scheduled)."""
        return self.settings.get('logoMode')

    @property
    def logo_loop_duration(self) -> Optional[int]:
        """Seconds per logo in loop mode, if the manifest sets it."""
        return self.settings.get('logoLoopDuration')
