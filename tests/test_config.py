"""Unit tests for configuration loading.

Covers the YAML Config, display.json handling and the typed settings
built from config sections.
"""

import json
import os
from unittest import mock

import pytest
import yaml

from src.billboard.config import ConfigError, DisplayConfig, ManifestSettings, SensorSettings
from src.common.config import Config, get_config


@pytest.fixture
def config_file(temp_dir):
    """Write a YAML config and return its path."""
    def write(data):
        path = temp_dir / 'config.yaml'
        path.write_text(yaml.safe_dump(data))
        return str(path)
    return write


class TestConfig:
    """Tests for the YAML Config."""

    def test_default_config_loads(self):
        """Test the bundled default config parses."""
        config = Config()

        assert config.get('logo_sync.poll_interval') == 300
        assert config.ipc_port == 5560

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            Config(str(temp_dir / 'nope.yaml'))

    def test_get_dot_notation(self, config_file):
        config = Config(config_file({'logo_sync': {'manifest_url': 'https://x/m.json'}}))

        assert config.get('logo_sync.manifest_url') == 'https://x/m.json'
        assert config.manifest_url == 'https://x/m.json'
        assert config.get('logo_sync.missing', 'dflt') == 'dflt'
        assert config.get('logo_sync.manifest_url.deeper') is None

    def test_set_creates_sections(self, config_file):
        config = Config(config_file({}))

        config.set('sensors.gateway_token', 'tok')

        assert config.section('sensors') == {'gateway_token': 'tok'}

    def test_section_missing(self, config_file):
        assert Config(config_file({})).section('logo_sync') == {}

    def test_env_overrides(self, config_file):
        """Test environment variables override file values."""
        env = {'BILLBOARD_MANIFEST_URL': 'https://env/m.json', 'BILLBOARD_GATEWAY_TOKEN': 'envtok'}
        with mock.patch.dict(os.environ, env):
            config = Config(config_file({'logo_sync': {'manifest_url': 'https://file/m.json'}}))

        assert config.manifest_url == 'https://env/m.json'
        assert config.get('sensors.gateway_token') == 'envtok'

    def test_save_round_trip(self, config_file, temp_dir):
        config = Config(config_file({'ipc': {'display_port': 6000}}))
        out = temp_dir / 'saved.yaml'

        config.save(str(out))

        assert Config(str(out)).ipc_port == 6000


class TestDisplayConfig:
    """Tests for display.json."""

    def test_defaults_without_file(self, display_config):
        assert display_config.logo_images == []
        assert display_config.logo_mode == 'loop'
        assert display_config.logo_loop_duration == 5
        assert display_config.manifest_version == ''

    def test_save_and_reload(self, display_config):
        display_config.logo_images = [{'id': 'a', 'path': '/tmp/a.png'}]
        display_config.logo_mode = 'fixed'
        display_config.logo_loop_duration = 9
        display_config.save()

        data = json.loads(display_config.file_path.read_text())
        assert data['logoImages'][0]['id'] == 'a'
        assert data['logoMode'] == 'fixed'

        reloaded = DisplayConfig(config_dir=str(display_config.config_dir))
        assert reloaded.logo_loop_duration == 9

    def test_invalid_logo_mode(self, display_config):
        with pytest.raises(ValueError):
            display_config.logo_mode = 'random'


class TestManifestSettings:
    """Tests for logo sync settings."""

    def test_from_config(self, config_file):
        config = Config(config_file({'logo_sync': {
            'enabled': True,
            'manifest_url': 'https://x/m.json',
            'poll_interval': 120,
            'broken_patterns': ['dead.png'],
        }}))

        settings = ManifestSettings.from_config(config)

        assert settings.poll_interval == 120.0
        assert settings.retry_attempts == 3
        assert settings.broken_patterns == ('dead.png',)

    def test_default_broken_patterns(self, config_file):
        config = Config(config_file({'logo_sync': {'manifest_url': 'https://x/m.json'}}))

        assert '/blob/' in ManifestSettings.from_config(config).broken_patterns

    def test_missing_url(self, config_file):
        """Test enabled sync without a URL is rejected at startup."""
        config = Config(config_file({'logo_sync': {'enabled': True}}))

        with pytest.raises(ConfigError):
            ManifestSettings.from_config(config)

    def test_disabled_without_url_ok(self, config_file):
        config = Config(config_file({'logo_sync': {'enabled': False}}))

        assert ManifestSettings.from_config(config).enabled is False

    @pytest.mark.parametrize('key,value', [
        ('poll_interval', 0),
        ('poll_interval', 'soon'),
        ('request_timeout', -1),
    ])
    def test_bad_numbers(self, config_file, key, value):
        config = Config(config_file({'logo_sync': {'manifest_url': 'https://x/m.json', key: value}}))

        with pytest.raises(ConfigError):
            ManifestSettings.from_config(config)


class TestSensorSettings:
    """Tests for sensor feed settings."""

    def test_from_config(self, config_file):
        config = Config(config_file({'sensors': {
            'enabled': True,
            'auth_token': 'Token abc123',
            'sensor_configs': {'temperature': '101', 'humidity': None},
        }}))

        settings = SensorSettings.from_config(config)

        assert settings.gateway_token == 'abc123'
        assert settings.broker_host == 'mqtt1.eoh.io'
        assert settings.sensor_configs == {'temperature': 101, 'humidity': None}

    def test_enabled_requires_token(self, config_file):
        config = Config(config_file({'sensors': {'enabled': True}}))

        with pytest.raises(ConfigError):
            SensorSettings.from_config(config)

    def test_bad_port(self, config_file):
        config = Config(config_file({'sensors': {'broker_port': 'mqtt'}}))

        with pytest.raises(ConfigError):
            SensorSettings.from_config(config)


class TestGetConfig:
    """Tests for the process-wide accessor."""

    def test_loaded_once(self, config_file):
        path = config_file({'ipc': {'display_port': 6001}})

        with mock.patch('src.common.config._global_config', None):
            first = get_config(path)
            second = get_config()

            assert first is second
            assert second.ipc_port == 6001
