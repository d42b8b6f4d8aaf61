"""Tests for the trigger entry point."""

from types import SimpleNamespace

import pytest

from hls_transcoder.core.logging import get_correlation_id
from hls_transcoder.modules.transcoding import handler as handler_module
from hls_transcoder.modules.transcoding.errors import ValidationError
from hls_transcoder.modules.transcoding.schemas import CompletionMessage, SourceReference


def _event(bucket: str = "media-uploads", key: str = "source/u1/My+Video.mp4") -> dict:
    return {
        "Records": [
            {
                "eventSource": "aws:s3",
                "eventName": "ObjectCreated:Put",
                "s3": {"bucket": {"name": bucket}, "object": {"key": key, "size": 1024}},
            }
        ]
    }


class TestSourceFromEvent:
    """Extracting the uploaded object from an event."""

    def test_first_record(self) -> None:
        source = handler_module.source_from_event(_event())

        assert source == SourceReference(bucket="media-uploads", key="source/u1/My+Video.mp4")

    @pytest.mark.parametrize(
        "event",
        [
            {},
            {"Records": []},
            {"Records": [{"s3": {"bucket": {}}}]},
            {"Records": None},
        ],
    )
    def test_malformed_events(self, event) -> None:
        with pytest.raises(ValidationError):
            handler_module.source_from_event(event)

    def test_empty_key_is_rejected(self) -> None:
        with pytest.raises(ValidationError):
            handler_module.source_from_event(_event(key=""))


class TestHandler:
    """Entry point wiring."""

    @pytest.fixture(autouse=True)
    def _quiet_setup(self, monkeypatch):
        monkeypatch.setattr(handler_module, "setup_logging", lambda **kwargs: None)
        monkeypatch.setattr(handler_module, "flush_tracing", lambda: None)

    def test_returns_camel_case_payload(self, monkeypatch) -> None:
        seen = {}

        def fake_process(source):
            seen["source"] = source
            seen["correlation_id"] = get_correlation_id()
            return CompletionMessage(
                owner_key="u1",
                master_playlist_url="https://cdn.example.com/u1/My-Video/master.m3u8",
            )

        monkeypatch.setattr(handler_module, "process_source", fake_process)

        result = handler_module.handler(_event(), SimpleNamespace(aws_request_id="req-42"))

        assert result == {
            "statusCode": 200,
            "message": "MP4 successfully converted to HLS and uploaded",
            "uniqueKey": "u1",
            "masterPlaylist": "https://cdn.example.com/u1/My-Video/master.m3u8",
        }
        assert seen["source"].key == "source/u1/My+Video.mp4"
        assert seen["correlation_id"] == "req-42"

    def test_errors_propagate(self, monkeypatch) -> None:
        def failing_process(source):
            raise ValidationError("Invalid source key format: source/x.mp4")

        monkeypatch.setattr(handler_module, "process_source", failing_process)

        with pytest.raises(ValidationError):
            handler_module.handler(_event(key="source/x.mp4"))
