"""
ZeroMQ event channel between the sync process and the display process.

Frames are "<topic> <json envelope>" so the display can filter with
SUBSCRIBE on the topic prefix.
"""

import json
import time
from enum import Enum
from typing import Any, Dict, Optional

import zmq

from src.common.logger import setup_logger

logger = setup_logger(__name__)


class MessageType(Enum):
    """Topics published to the display process."""
    MANIFEST_UPDATE = "manifest"  # usable logo manifest changed, hot-reload
    SENSOR_UPDATE = "sensor"      # latest IoT readings


class Message:
    """Envelope carried by every frame."""

    def __init__(
        self,
        msg_type: MessageType,
        data: Dict[str, Any],
        sender: str,
        timestamp: Optional[float] = None
    ):
        self.msg_type = msg_type
        self.data = data
        self.sender = sender
        self.timestamp = timestamp or time.time()

    @property
    def topic(self) -> str:
        """Frame topic prefix."""
        return self.msg_type.value

    def to_json(self) -> str:
        """Envelope as JSON."""
        return json.dumps({
            "type": self.topic,
            "sender": self.sender,
            "timestamp": self.timestamp,
            "data": self.data,
        })

    def to_frame(self) -> str:
        """Topic-prefixed wire frame."""
        return f"{self.topic} {self.to_json()}"

    @classmethod
    def from_json(cls, json_str: str) -> "Message":
        """
        Decode an envelope.

        Raises:
            ValueError: On invalid JSON or an unknown type
            KeyError: On a missing envelope field
        """
        envelope = json.loads(json_str)
        return cls(
            msg_type=MessageType(envelope["type"]),
            data=envelope["data"],
            sender=envelope["sender"],
            timestamp=envelope["timestamp"]
        )

    def __repr__(self) -> str:
        return f"Message(topic={self.topic}, sender={self.sender})"


class MessagePublisher:
    """PUB socket the display process subscribes to."""

    # Slow-joiner grace period after bind
    BIND_SETTLE_SECONDS = 0.1

    def __init__(self, port: int, service_name: str):
        """
        Bind the publisher.

        Args:
            port: TCP port to bind on all interfaces
            service_name: Sender name stamped on every message
        """
        self.port = port
        self.service_name = service_name
        self.context = zmq.Context()
        self.socket = self.context.socket(zmq.PUB)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.bind(f"tcp://*:{port}")

        time.sleep(self.BIND_SETTLE_SECONDS)
        logger.info("Display publisher %s bound on port %d", service_name, port)

    def publish(self, msg_type: MessageType, data: Dict[str, Any]) -> Message:
        """
        Send one message.

        Returns:
            The message that was sent
        """
        message = Message(msg_type, data, self.service_name)
        self.socket.send_string(message.to_frame())
        logger.debug("Published %r", message)
        return message

    def close(self) -> None:
        """Close the socket and terminate the context."""
        self.socket.close()
        self.context.term()
        logger.info("Display publisher %s closed", self.service_name)


def parse_published(raw_message: str) -> Optional[Message]:
    """
    Decode a frame produced by MessagePublisher.

    Returns:
        Message, or None if the frame is malformed
    """
    topic, sep, body = raw_message.partition(' ')
    if not sep:
        return None
    try:
        message = Message.from_json(body)
    except (ValueError, KeyError) as e:
        logger.error("Dropping malformed %s frame: %s", topic, e)
        return None
    return message
