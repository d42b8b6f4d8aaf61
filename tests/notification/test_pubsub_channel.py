"""Tests for the Pub/Sub notification channel."""

import json
from concurrent import futures
from unittest.mock import MagicMock

import pytest
from google.api_core.exceptions import NotFound, ServiceUnavailable

from hls_transcoder.modules.notification.channels import PubSubChannel
from hls_transcoder.modules.transcoding.errors import PublishError

MESSAGE = {
    "statusCode": 200,
    "message": "MP4 successfully converted to HLS and uploaded",
    "uniqueKey": "u1",
    "masterPlaylist": "https://cdn.example.com/u1/clip/master.m3u8",
}


def _mock_publisher(result=None, error=None) -> MagicMock:
    client = MagicMock()
    client.topic_path.side_effect = lambda project, topic: f"projects/{project}/topics/{topic}"
    future = client.publish.return_value
    if error is not None:
        future.result.side_effect = error
    else:
        future.result.return_value = result
    return client


class TestPubSubChannel:
    """Publishing completion messages."""

    def test_publish_returns_message_id(self) -> None:
        client = _mock_publisher(result="1234567890")
        channel = PubSubChannel(project_id="media-project", client=client, timeout=5.0)

        message_id = channel.publish("hls-complete", MESSAGE)

        assert message_id == "1234567890"
        topic_path, data = client.publish.call_args.args
        assert topic_path == "projects/media-project/topics/hls-complete"
        assert json.loads(data.decode("utf-8")) == MESSAGE
        client.publish.return_value.result.assert_called_once_with(timeout=5.0)

    @pytest.mark.parametrize(
        "error",
        [NotFound("Resource not found (resource=hls-complete)."), ServiceUnavailable("unavailable")],
    )
    def test_api_errors_raise_publish_error(self, error) -> None:
        channel = PubSubChannel(project_id="media-project", client=_mock_publisher(error=error))

        with pytest.raises(PublishError) as exc_info:
            channel.publish("hls-complete", MESSAGE)

        assert exc_info.value.stage == "notify"
        assert exc_info.value.__cause__ is error

    def test_timeout_raises_publish_error(self) -> None:
        client = _mock_publisher(error=futures.TimeoutError())
        channel = PubSubChannel(project_id="media-project", client=client)

        with pytest.raises(PublishError) as exc_info:
            channel.publish("hls-complete", MESSAGE)

        assert exc_info.value.cause == "TimeoutError"

    @pytest.mark.parametrize("project_id,topic", [("", "hls-complete"), ("media-project", "")])
    def test_unconfigured_channel(self, project_id, topic) -> None:
        client = _mock_publisher(result="1")
        channel = PubSubChannel(project_id=project_id, client=client)

        with pytest.raises(PublishError):
            channel.publish(topic, MESSAGE)

        client.publish.assert_not_called()


class TestPubSubChannelClose:
    """Publisher client lifetime."""

    def test_created_client_is_stopped(self, monkeypatch) -> None:
        from google.cloud import pubsub_v1

        client = _mock_publisher(result="1")
        factory = MagicMock(return_value=client)
        monkeypatch.setattr(pubsub_v1, "PublisherClient", factory)
        credentials = MagicMock(name="credentials")
        channel = PubSubChannel(project_id="media-project", credentials=credentials)

        channel.publish("hls-complete", MESSAGE)
        channel.close()

        factory.assert_called_once_with(credentials=credentials)
        client.stop.assert_called_once_with()
        assert channel._client is None

    def test_close_without_publish_is_a_no_op(self, monkeypatch) -> None:
        from google.cloud import pubsub_v1

        factory = MagicMock()
        monkeypatch.setattr(pubsub_v1, "PublisherClient", factory)

        PubSubChannel(project_id="media-project").close()

        factory.assert_not_called()

    def test_injected_client_is_left_open(self) -> None:
        client = _mock_publisher(result="1")
        channel = PubSubChannel(project_id="media-project", client=client)

        channel.publish("hls-complete", MESSAGE)
        channel.close()

        client.stop.assert_not_called()
