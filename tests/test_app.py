"""Unit tests for BillboardSyncApp wiring."""

from unittest import mock

import pytest
import yaml

from src.billboard.app import BillboardSyncApp
from src.billboard.config import ConfigError
from src.common.config import Config


@pytest.fixture
def app_config(temp_dir):
    """Config with logo sync on and sensors off."""
    path = temp_dir / 'config.yaml'
    path.write_text(yaml.safe_dump({
        'logo_sync': {
            'manifest_url': 'https://cdn.example.com/manifest.json',
            'download_path': str(temp_dir / 'downloads'),
        },
        'sensors': {'enabled': False},
        'display': {'config_dir': str(temp_dir / 'config')},
    }))
    return Config(str(path))


def test_builds_services_without_publisher(app_config):
    app = BillboardSyncApp(app_config, publish=False)

    assert app.logo_service.settings.manifest_url == 'https://cdn.example.com/manifest.json'
    assert app.sensor_feed is None
    assert app.bridge is None


def test_bridge_attached_to_logo_service(app_config):
    with mock.patch('src.billboard.app.MessagePublisher') as publisher_cls:
        app = BillboardSyncApp(app_config)

    publisher_cls.assert_called_once_with(port=5560, service_name='billboard_sync')
    assert app.logo_service.get_status()['listeners'] == 1


def test_sensor_feed_requires_token(app_config):
    app_config.set('sensors.enabled', True)

    with pytest.raises(ConfigError):
        BillboardSyncApp(app_config, publish=False)


def test_start_and_stop(app_config):
    app = BillboardSyncApp(app_config, publish=False)

    with mock.patch.object(app.logo_service, 'initialize') as mock_init:
        app.start()
        mock_init.assert_called_once()

    app.stop()
    assert app.logo_service.is_running is False
