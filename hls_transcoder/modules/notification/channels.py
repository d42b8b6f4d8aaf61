"""Notification channel implementations.

Implements delivery of structured completion messages to a named topic.
"""

import json
import logging
from abc import ABC, abstractmethod
from concurrent import futures
from typing import Optional

from google.api_core.exceptions import GoogleAPIError

from hls_transcoder.core.logging import log_error, log_info
from hls_transcoder.modules.transcoding.errors import PublishError

logger = logging.getLogger(__name__)


class NotificationChannel(ABC):
    """Base class for notification channels."""

    channel_name: str = "base"

    @abstractmethod
    def publish(self, topic: str, message: dict) -> str:
        """Publish a structured message to a topic.

        Args:
            topic: Channel-specific topic name
            message: JSON-serializable message body

        Returns:
            Message ID assigned by the channel

        Raises:
            PublishError: If the message could not be delivered
        """
        pass

    def close(self) -> None:
        """Release resources held by the channel."""
        pass


class PubSubChannel(NotificationChannel):
    """Google Cloud Pub/Sub notification channel."""

    channel_name = "pubsub"

    def __init__(
        self,
        project_id: str,
        credentials=None,
        client=None,
        timeout: float = 30.0,
    ):
        """Initialize Pub/Sub channel.

        Args:
            project_id: Google Cloud project owning the topic
            credentials: google-auth credentials for the publisher
            client: Pre-built publisher client (left open by close())
            timeout: Seconds to wait for the publish to be acknowledged
        """
        self.project_id = project_id
        self.credentials = credentials
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None

    def _get_client(self):
        """Get or create the publisher client."""
        if self._client is None:
            from google.cloud import pubsub_v1

            self._client = pubsub_v1.PublisherClient(credentials=self.credentials)
        return self._client

    def publish(self, topic: str, message: dict) -> str:
        """Publish a JSON message and wait for its message ID."""
        if not self.project_id or not topic:
            raise PublishError("Pub/Sub project and topic must be configured")

        data = json.dumps(message).encode("utf-8")

        try:
            client = self._get_client()
            topic_path = client.topic_path(self.project_id, topic)
            future = client.publish(topic_path, data)
            message_id = future.result(timeout=self.timeout)
        except (GoogleAPIError, futures.TimeoutError) as e:
            log_error(logger, "Error publishing to Pub/Sub", e, topic=topic)
            raise PublishError(f"Could not publish to topic {topic}", str(e) or type(e).__name__) from e

        log_info(logger, f"Message published to Pub/Sub: {message_id}", topic=topic, message_id=message_id)
        return message_id

    def close(self) -> None:
        """Stop the publisher client if this channel created it."""
        if self._owns_client and self._client is not None:
            self._client.stop()
            self._client = None
