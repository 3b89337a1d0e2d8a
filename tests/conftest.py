"""
Pytest fixtures shared by the billboard sync tests.

Provides sample manifests, temporary directories and fake collaborators.
"""

import json
import tempfile
from pathlib import Path
from unittest import mock

import pytest

from src.billboard.config import DisplayConfig, ManifestSettings
from src.billboard.manifest import Manifest


SAMPLE_MANIFEST = {
    'version': '1.0.1',
    'lastUpdated': '2024-06-10T08:00:00Z',
    'logos': [
        {
            'id': 'logo-a',
            'name': 'Company A',
            'url': 'https://cdn.example.com/logos/a.png',
            'filename': 'a.png',
            'active': True,
            'priority': 2,
        },
        {
            'id': 'logo-b',
            'name': 'Company B',
            'url': 'https://cdn.example.com/logos/b.png',
            'filename': 'b.png',
            'active': True,
            'priority': 1,
        },
        {
            'id': 'logo-c',
            'name': 'Company C',
            'url': 'https://cdn.example.com/logos/c.png',
            'filename': 'c.png',
            'active': False,
            'priority': 3,
        },
    ],
    'settings': {
        'logoMode': 'loop',
        'logoLoopDuration': 8,
    },
}


def make_response(status_code=200, payload=None, content=None):
    """Build a fake requests response."""
    response = mock.MagicMock()
    response.status_code = status_code
    if content is None and payload is not None:
        content = json.dumps(payload).encode('utf-8')
    response.content = content if content is not None else b''
    response.iter_content.return_value = [b'PNG', b'DATA']
    return response


@pytest.fixture
def sample_manifest_data():
    """Fresh copy of the sample manifest document."""
    return json.loads(json.dumps(SAMPLE_MANIFEST))


@pytest.fixture
def sample_manifest(sample_manifest_data):
    """Parsed sample manifest."""
    return Manifest.from_dict(sample_manifest_data)


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    """Logo sync settings pointing at a temp download dir."""
    return ManifestSettings(
        enabled=True,
        manifest_url='https://cdn.example.com/manifest.json',
        poll_interval=60,
        download_path=str(temp_dir / 'downloads'),
        retry_attempts=2,
        retry_delay=0,
    )


@pytest.fixture
def display_config(temp_dir):
    """Display config in a temp dir."""
    return DisplayConfig(config_dir=str(temp_dir / 'config'))


@pytest.fixture
def response_factory():
    """Factory for fake requests responses."""
    return make_response
