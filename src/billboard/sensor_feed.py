"""
IoT Sensor Feed for the billboard.

Subscribes to E-Ra gateway MQTT topics and keeps the latest sensor readings:

    eoh/chip/{token}/config/{config_id}/value   payload {"<key>": <value>}
    eoh/chip/{token}/lwt                        payload {"ol": 1} / {"ol": 0}

Config ids are mapped to sensor names through SensorSettings.sensor_configs.
"""

import json
import re
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import paho.mqtt.client as mqtt

from .config import SensorSettings
from .sensor_parsing import extract_sensor_value
from src.common.logger import setup_logger

logger = setup_logger(__name__)

_CONFIG_ID_RE = re.compile(r"/config/(\d+)/value$")

SENSOR_NAMES = ('temperature', 'humidity', 'pm25', 'pm10')


@dataclass
class SensorData:
    """Latest sensor readings."""

    readings: Dict[str, Optional[float]] = field(
        default_factory=lambda: {name: None for name in SENSOR_NAMES}
    )
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for IPC."""
        data: Dict[str, Any] = dict(self.readings)
        data['timestamp'] = self.timestamp.isoformat()
        return data


SensorListener = Callable[[SensorData], None]


class SensorFeed:
    """Maintains sensor readings from gateway MQTT messages."""

    QOS = 1

    def __init__(
        self,
        settings: SensorSettings,
        client_factory: Optional[Callable[..., Any]] = None
    ):
        """
        Initialize the sensor feed.

        Args:
            settings: Sensor feed settings
            client_factory: Callable building the MQTT client (paho Client if None)
        """
        self.settings = settings
        self._client_factory = client_factory or self._default_client
        self._client = None

        self._lock = threading.Lock()
        self._data = SensorData()
        self._listeners: List[SensorListener] = []

        # Connection state
        self._connected = False
        self._gateway_online: Optional[bool] = None
        self._last_connected: Optional[datetime] = None
        self._last_message: Optional[datetime] = None
        self._reconnect_attempts = 0

        # id -> sensor name
        self._config_map: Dict[int, str] = {
            config_id: name
            for name, config_id in settings.sensor_configs.items()
            if config_id is not None
        }

    @property
    def value_topic(self) -> str:
        """Wildcard topic for sensor values."""
        return f"eoh/chip/{self.settings.gateway_token}/config/+/value"

    @property
    def lwt_topic(self) -> str:
        """Gateway last-will topic."""
        return f"eoh/chip/{self.settings.gateway_token}/lwt"

    @property
    def is_connected(self) -> bool:
        """Check if connected to the broker."""
        return self._connected

    def _default_client(self):
        """Build a paho client."""
        kwargs: Dict[str, Any] = {
            'client_id': f"billboard_{self.settings.gateway_token}_{int(time.time() * 1000)}",
        }
        if hasattr(mqtt, "CallbackAPIVersion"):
            kwargs['callback_api_version'] = mqtt.CallbackAPIVersion.VERSION2
        return mqtt.Client(**kwargs)

    def connect(self) -> None:
        """Connect to the broker and start the network loop thread."""
        if self._client is not None:
            logger.warning("Sensor feed already connected or connecting")
            return

        client = self._client_factory()
        client.username_pw_set(self.settings.gateway_token, self.settings.gateway_token)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        logger.info(
            "Connecting to MQTT broker %s:%d",
            self.settings.broker_host,
            self.settings.broker_port
        )
        client.connect_async(
            self.settings.broker_host,
            self.settings.broker_port,
            keepalive=self.settings.keepalive
        )
        client.loop_start()
        self._client = client

    def disconnect(self) -> None:
        """Disconnect and stop the network loop."""
        client = self._client
        if client is None:
            return

        self._client = None
        try:
            client.disconnect()
            client.loop_stop()
        except Exception as e:
            logger.error("Error disconnecting from MQTT broker: %s", e)

        self._connected = False
        logger.info("Sensor feed disconnected")

    def _on_connect(self, client, _userdata, _flags, reason_code, properties=None):
        failed = getattr(reason_code, 'is_failure', reason_code != 0)
        if failed:
            self._reconnect_attempts += 1
            logger.error("MQTT connection failed (reason=%s)", reason_code)
            return

        self._connected = True
        self._last_connected = datetime.now()
        self._reconnect_attempts = 0

        client.subscribe(self.value_topic, qos=self.QOS)
        client.subscribe(self.lwt_topic, qos=self.QOS)
        logger.info("Connected to MQTT broker, subscribed to %s", self.value_topic)

    def _on_disconnect(self, _client, _userdata, *args):
        self._connected = False
        logger.warning("Disconnected from MQTT broker")

    def _on_message(self, _client, _userdata, msg):
        self.handle_message(msg.topic, msg.payload)

    def handle_message(self, topic: str, payload: bytes) -> bool:
        """
        Process one MQTT message.

        Args:
            topic: Message topic
            payload: Raw payload bytes

        Returns:
            True if a sensor reading was updated
        """
        self._last_message = datetime.now()

        if isinstance(payload, bytes):
            text = payload.decode('utf-8', errors='replace')
        else:
            text = str(payload)

        if topic.endswith('/lwt'):
            self._handle_lwt(text)
            return False

        try:
            data = json.loads(text)
        except ValueError:
            logger.warning("Received non-JSON message on %s: %s", topic, text)
            return False

        match = _CONFIG_ID_RE.search(topic)
        if not match:
            logger.warning("Could not extract config id from topic: %s", topic)
            return False

        config_id = int(match.group(1))
        sensor = self._config_map.get(config_id)
        if sensor is None:
            logger.warning("Unknown config id: %d", config_id)
            return False

        value = extract_sensor_value(data)
        if value is None:
            logger.warning("Could not extract numeric value for config id %d: %r", config_id, data)
            return False

        with self._lock:
            self._data.readings[sensor] = value
            self._data.timestamp = datetime.now()
            snapshot = SensorData(readings=dict(self._data.readings), timestamp=self._data.timestamp)

        logger.info("Updated %s (id %d) = %s", sensor, config_id, value)
        self._notify(snapshot)
        return True

    def _handle_lwt(self, text: str) -> None:
        """Track gateway online state from its last-will message."""
        try:
            status = json.loads(text).get('ol')
        except (ValueError, AttributeError):
            logger.warning("Could not parse LWT message: %s", text)
            return

        if status == 1:
            self._gateway_online = True
            logger.info("Gateway is online")
        elif status == 0:
            self._gateway_online = False
            logger.warning("Gateway is offline")

    def subscribe(self, listener: SensorListener) -> Callable[[], None]:
        """Register a reading listener. Returns the unsubscribe handle."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, data: SensorData) -> None:
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(data)
            except Exception as e:
                logger.error("Error in sensor listener %r: %s", listener, e)

    def get_data(self) -> SensorData:
        """Snapshot of the latest readings."""
        with self._lock:
            return SensorData(readings=dict(self._data.readings), timestamp=self._data.timestamp)

    def get_status(self) -> Dict[str, Any]:
        """Connection status for diagnostics."""
        return {
            'connected': self._connected,
            'gateway_online': self._gateway_online,
            'last_connected': self._last_connected.isoformat() if self._last_connected else None,
            'last_message': self._last_message.isoformat() if self._last_message else None,
            'reconnect_attempts': self._reconnect_attempts,
        }
