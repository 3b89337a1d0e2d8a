"""Unit tests for ZeroMQ publishing and the display bridge."""

import json
from unittest import mock

import pytest

from src.billboard.display_bridge import DisplayBridge
from src.billboard.notifier import ManifestChange, ManifestNotifier
from src.billboard.sensor_feed import SensorData
from src.common.ipc import Message, MessagePublisher, MessageType, parse_published


class TestMessage:
    """Tests for the IPC message format."""

    def test_json_round_trip(self):
        message = Message(MessageType.SENSOR_UPDATE, {'temperature': 21.5}, 'sync', timestamp=10.0)

        decoded = Message.from_json(message.to_json())

        assert decoded.msg_type == MessageType.SENSOR_UPDATE
        assert decoded.data == {'temperature': 21.5}
        assert decoded.timestamp == 10.0

    def test_parse_published(self):
        message = Message(MessageType.MANIFEST_UPDATE, {'version': '2'}, 'sync')

        decoded = parse_published(f"manifest {message.to_json()}")

        assert decoded.msg_type == MessageType.MANIFEST_UPDATE
        assert decoded.data['version'] == '2'

    @pytest.mark.parametrize('raw', ['manifest', 'manifest {bad json', 'sensor {"type": "sensor"}'])
    def test_parse_published_malformed(self, raw):
        assert parse_published(raw) is None


class TestMessagePublisher:
    """Tests for the PUB socket wrapper."""

    @pytest.fixture
    def zmq_context(self):
        with mock.patch('src.common.ipc.zmq.Context') as context_cls, \
                mock.patch('src.common.ipc.time.sleep'):
            yield context_cls.return_value

    def test_binds_port(self, zmq_context):
        MessagePublisher(5599, 'sync')

        zmq_context.socket.return_value.bind.assert_called_once_with('tcp://*:5599')

    def test_publish_prefixes_topic(self, zmq_context):
        publisher = MessagePublisher(5599, 'sync')

        publisher.publish(MessageType.SENSOR_UPDATE, {'pm10': 40.0})

        frame = zmq_context.socket.return_value.send_string.call_args[0][0]
        topic, body = frame.split(' ', 1)
        assert topic == 'sensor'
        assert json.loads(body)['sender'] == 'sync'

    def test_close(self, zmq_context):
        publisher = MessagePublisher(5599, 'sync')

        publisher.close()

        zmq_context.socket.return_value.close.assert_called_once()
        zmq_context.term.assert_called_once()


class TestDisplayBridge:
    """Tests for forwarding updates to the display process."""

    @pytest.fixture
    def publisher(self):
        return mock.MagicMock(spec=MessagePublisher)

    def test_manifest_change_forwarded(self, publisher, sample_manifest):
        bridge = DisplayBridge(publisher)
        change = ManifestChange(manifest=sample_manifest, source='poll', added=sample_manifest.logos[:1])

        bridge.on_manifest_change(change)

        msg_type, data = publisher.publish.call_args[0]
        assert msg_type == MessageType.MANIFEST_UPDATE
        assert data['manifest']['version'] == '1.0.1'
        assert data['added'] == ['logo-a']
        assert bridge.published_count == 1

    def test_sensor_data_forwarded(self, publisher):
        bridge = DisplayBridge(publisher)
        data = SensorData()
        data.readings['pm25'] = 12.0

        bridge.on_sensor_data(data)

        msg_type, payload = publisher.publish.call_args[0]
        assert msg_type == MessageType.SENSOR_UPDATE
        assert payload['pm25'] == 12.0

    def test_attach_and_detach(self, publisher, sample_manifest):
        """Test the bridge follows a service's notifications until detached."""
        notifier = ManifestNotifier()
        service = mock.MagicMock()
        service.subscribe.side_effect = notifier.subscribe
        bridge = DisplayBridge(publisher)

        bridge.attach(logo_service=service)
        notifier.notify(ManifestChange(manifest=sample_manifest, source='poll'))
        bridge.detach()
        notifier.notify(ManifestChange(manifest=sample_manifest, source='poll'))

        assert publisher.publish.call_count == 1
        assert notifier.listener_count == 0

    def test_close(self, publisher):
        bridge = DisplayBridge(publisher)
        bridge.close()
        publisher.close.assert_called_once()
