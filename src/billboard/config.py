"""
Configuration for the billboard logo sync and sensor feed.

DisplayConfig persists what the display process reads (display.json): the
downloaded logo list and logo rotation settings. ManifestSettings and
SensorSettings are typed views of the YAML application config.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from src.common.config import Config
from .manifest_validator import DEFAULT_BROKEN_PATTERNS


class ConfigError(Exception):
    """Raised when required settings are missing or invalid at startup."""
    pass


VALID_LOGO_MODES = ('fixed', 'loop', 'scheduled')


class DisplayConfig:
    """Manages the JSON display configuration shared with the display process."""

    DEFAULT_CONFIG_DIR = "./config"
    FILENAME = "display.json"

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize display configuration.

        Args:
            config_dir: Path to config directory. If None, uses DEFAULT_CONFIG_DIR
        """
        if config_dir is None:
            config_dir = self.DEFAULT_CONFIG_DIR

        self.config_dir = Path(config_dir)
        self._display: Dict[str, Any] = {}

        if self.config_dir.exists():
            self.load()

    @property
    def file_path(self) -> Path:
        """Path of display.json."""
        return self.config_dir / self.FILENAME

    def load(self) -> None:
        """Load display.json (missing file means empty config)."""
        if not self.file_path.exists():
            self._display = {}
            return

        with open(self.file_path, 'r') as f:
            self._display = json.load(f)

    def save(self) -> None:
        """Save display.json."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        with open(self.file_path, 'w') as f:
            json.dump(self._display, f, indent=2)

    @property
    def logo_images(self) -> List[Dict[str, Any]]:
        """Get logos the display rotates through."""
        return self._display.get('logoImages', [])

    @logo_images.setter
    def logo_images(self, value: List[Dict[str, Any]]) -> None:
        """Set logos the display rotates through."""
        self._display['logoImages'] = value

    @property
    def logo_mode(self) -> str:
        """Get logo display mode (fixed, loop or scheduled)."""
        return self._display.get('logoMode', 'loop')

    @logo_mode.setter
    def logo_mode(self, value: str) -> None:
        """Set logo display mode."""
        if value not in VALID_LOGO_MODES:
            raise ValueError(f"logo_mode must be one of {', '.join(VALID_LOGO_MODES)}")
        self._display['logoMode'] = value

    @property
    def logo_loop_duration(self) -> int:
        """Get seconds per logo in loop mode."""
        return self._display.get('logoLoopDuration', 5)

    @logo_loop_duration.setter
    def logo_loop_duration(self, value: int) -> None:
        """Set seconds per logo in loop mode."""
        self._display['logoLoopDuration'] = value

    @property
    def manifest_version(self) -> str:
        """Get version of the manifest the logo list came from."""
        return self._display.get('manifestVersion', '')

    @manifest_version.setter
    def manifest_version(self, value: str) -> None:
        """Set manifest version."""
        self._display['manifestVersion'] = value

    def get_display_config(self) -> Dict[str, Any]:
        """Get raw display configuration dictionary."""
        return self._display.copy()

    def __repr__(self) -> str:
        """String representation."""
        return f"DisplayConfig(config_dir={self.config_dir})"


@dataclass
class ManifestSettings:
    """Settings for the logo manifest sync (logo_sync section)."""

    enabled: bool = True
    manifest_url: str = ""
    poll_interval: float = 300
    download_path: str = "./downloads"
    retry_attempts: int = 3
    retry_delay: float = 2
    request_timeout: float = 10
    broken_patterns: Tuple[str, ...] = DEFAULT_BROKEN_PATTERNS

    def validate(self) -> None:
        """
        Check settings needed to run.

        Raises:
            ConfigError: If enabled without a manifest URL or with a bad interval
        """
        if not self.enabled:
            return
        if not self.manifest_url:
            raise ConfigError("logo_sync.manifest_url is required when logo sync is enabled")
        if self.poll_interval <= 0:
            raise ConfigError("logo_sync.poll_interval must be positive")
        if self.request_timeout <= 0:
            raise ConfigError("logo_sync.request_timeout must be positive")

    @classmethod
    def from_config(cls, config: Config) -> "ManifestSettings":
        """
        Build settings from the YAML config.

        Raises:
            ConfigError: If values are missing, malformed or invalid
        """
        section = config.section('logo_sync')
        defaults = cls()

        try:
            settings = cls(
                enabled=bool(section.get('enabled', defaults.enabled)),
                manifest_url=str(section.get('manifest_url') or ''),
                poll_interval=float(section.get('poll_interval', defaults.poll_interval)),
                download_path=str(section.get('download_path') or defaults.download_path),
                retry_attempts=int(section.get('retry_attempts', defaults.retry_attempts)),
                retry_delay=float(section.get('retry_delay', defaults.retry_delay)),
                request_timeout=float(section.get('request_timeout', defaults.request_timeout)),
                broken_patterns=tuple(section.get('broken_patterns') or DEFAULT_BROKEN_PATTERNS),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid logo_sync setting: {e}") from e

        settings.validate()
        return settings


@dataclass
class SensorSettings:
    """Settings for the MQTT sensor feed (sensors section)."""

    enabled: bool = False
    broker_host: str = "mqtt1.eoh.io"
    broker_port: int = 1883
    gateway_token: str = ""
    keepalive: int = 60
    sensor_configs: Dict[str, Optional[int]] = field(default_factory=dict)

    def validate(self) -> None:
        """
        Raises:
            ConfigError: If enabled without a gateway token
        """
        if self.enabled and not self.gateway_token:
            raise ConfigError("sensors.gateway_token is required when the sensor feed is enabled")

    @classmethod
    def from_config(cls, config: Config) -> "SensorSettings":
        """Build settings from the YAML config."""
        section = config.section('sensors')
        defaults = cls()

        token = str(section.get('gateway_token') or section.get('auth_token') or '')
        # Auth tokens are handed out as "Token <gateway token>"
        if token.startswith('Token '):
            token = token[len('Token '):]

        try:
            sensor_configs = {
                name: (int(config_id) if config_id is not None else None)
                for name, config_id in (section.get('sensor_configs') or {}).items()
            }
            settings = cls(
                enabled=bool(section.get('enabled', defaults.enabled)),
                broker_host=str(section.get('broker_host') or defaults.broker_host),
                broker_port=int(section.get('broker_port', defaults.broker_port)),
                gateway_token=token,
                keepalive=int(section.get('keepalive', defaults.keepalive)),
                sensor_configs=sensor_configs,
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid sensors setting: {e}") from e

        settings.validate()
        return settings
