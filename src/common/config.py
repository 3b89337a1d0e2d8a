"""
YAML application config for the billboard sync process.

Sections: logo_sync, sensors, ipc, display. Values are read with dotted
keys ("logo_sync.poll_interval"); a few deployment secrets can be
supplied through the environment instead of the file.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# env var -> dotted config key
ENV_OVERRIDES = {
    'BILLBOARD_MANIFEST_URL': 'logo_sync.manifest_url',
    'BILLBOARD_GATEWAY_TOKEN': 'sensors.gateway_token',
}

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent.parent / "config" / "default_config.yaml"


class Config:
    """Dotted-key view over the YAML config file."""

    def __init__(self, config_path: Optional[str] = None):
        """
        Load the config.

        Args:
            config_path: YAML file. If None, uses config/default_config.yaml

        Raises:
            FileNotFoundError: If the file does not exist
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self._config: Dict[str, Any] = {}
        self.load()

    def load(self) -> None:
        """(Re)read the file and apply environment overrides."""
        if not self.config_path.exists():
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        with open(self.config_path, 'r') as f:
            self._config = yaml.safe_load(f) or {}

        for env_name, key in ENV_OVERRIDES.items():
            if env_name in os.environ:
                self.set(key, os.environ[env_name])

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key.

        Example:
            >>> Config().get('logo_sync.poll_interval')
            300
        """
        node: Any = self._config
        for part in key.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a dotted key, creating intermediate sections."""
        *parents, leaf = key.split('.')
        node = self._config
        for part in parents:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value

    def save(self, path: Optional[str] = None) -> None:
        """Write the config back as YAML (to config_path if path is None)."""
        target = Path(path) if path else self.config_path
        with open(target, 'w') as f:
            yaml.safe_dump(self._config, f, default_flow_style=False, indent=2)

    def section(self, name: str) -> Dict[str, Any]:
        """Copy of a top-level section (empty dict if missing)."""
        value = self._config.get(name)
        return dict(value) if isinstance(value, dict) else {}

    @property
    def manifest_url(self) -> str:
        """Logo manifest URL."""
        return self.get('logo_sync.manifest_url', '')

    @property
    def ipc_port(self) -> int:
        """Port the display publisher binds."""
        return self.get('ipc.display_port', 5560)

    def __repr__(self) -> str:
        return f"Config(path={self.config_path})"


_global_config: Optional[Config] = None


def get_config(config_path: Optional[str] = None) -> Config:
    """
    Process-wide config, loaded on first call.

    Args:
        config_path: Only used on the first call
    """
    global _global_config

    if _global_config is None:
        _global_config = Config(config_path)

    return _global_config
