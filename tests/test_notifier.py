"""Unit tests for the ManifestNotifier module.

Tests subscription handles, synchronous fan-out and listener isolation.
"""

from unittest import mock

import pytest

from src.billboard.manifest import Manifest
from src.billboard.notifier import ManifestChange, ManifestNotifier


@pytest.fixture
def notifier():
    """Create a notifier."""
    return ManifestNotifier()


@pytest.fixture
def change(sample_manifest):
    """A change for the sample manifest."""
    return ManifestChange(
        manifest=sample_manifest,
        source='poll',
        added=list(sample_manifest.logos[:1]),
    )


class TestManifestNotifier:
    """Tests for ManifestNotifier."""

    def test_notify_calls_listeners(self, notifier, change):
        """Test every listener receives the change."""
        first = mock.MagicMock()
        second = mock.MagicMock()
        notifier.subscribe(first)
        notifier.subscribe(second)

        delivered = notifier.notify(change)

        first.assert_called_once_with(change)
        second.assert_called_once_with(change)
        assert delivered == 2

    def test_unsubscribe(self, notifier, change):
        """Test an unsubscribed listener is not called."""
        listener = mock.MagicMock()
        unsubscribe = notifier.subscribe(listener)

        unsubscribe()
        notifier.notify(change)

        listener.assert_not_called()
        assert notifier.listener_count == 0

    def test_unsubscribe_twice(self, notifier):
        """Test unsubscribing twice does not raise."""
        unsubscribe = notifier.subscribe(mock.MagicMock())
        unsubscribe()
        unsubscribe()

    def test_failing_listener_isolated(self, notifier, change):
        """Test a raising listener does not stop the fan-out."""
        bad = mock.MagicMock(side_effect=RuntimeError("display crashed"))
        good = mock.MagicMock()
        notifier.subscribe(bad)
        notifier.subscribe(good)

        delivered = notifier.notify(change)

        good.assert_called_once_with(change)
        assert delivered == 1

    def test_notify_without_listeners(self, notifier, change):
        """Test notify with no listeners is a no-op."""
        assert notifier.notify(change) == 0

    def test_clear(self, notifier):
        """Test clear drops all listeners."""
        notifier.subscribe(mock.MagicMock())
        notifier.clear()
        assert notifier.listener_count == 0


class TestManifestChange:
    """Tests for the change payload."""

    def test_to_dict(self, change):
        """Test IPC serialization."""
        data = change.to_dict()

        assert data['source'] == 'poll'
        assert data['manifest']['version'] == '1.0.1'
        assert data['added'] == ['logo-a']
        assert data['removed'] == []
        assert isinstance(data['timestamp'], float)

    def test_timestamp_defaults_to_now(self):
        """Test timestamp is filled in."""
        change = ManifestChange(manifest=Manifest(version='1'), source='force')
        assert change.timestamp > 0
