"""Tests for the object storage backends."""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from hls_transcoder.core.storage import (
    LocalStorage,
    S3Storage,
    StorageConfig,
    get_storage,
)


def _client_error(code: str, operation: str = "GetObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


@pytest.fixture
def local_storage(tmp_path):
    return LocalStorage(StorageConfig(backend="local", local_path=str(tmp_path / "store")))


class TestLocalStorage:
    """Filesystem-backed storage."""

    def test_upload_then_download(self, local_storage, tmp_path) -> None:
        source = tmp_path / "segment.ts"
        source.write_bytes(b"\x47" * 376)

        uploaded = local_storage.upload(str(source), "media", "hls/u1/clip/720p_000.ts")
        assert uploaded.success
        assert uploaded.file_size == 376

        destination = tmp_path / "copy.ts"
        downloaded = local_storage.download("media", "hls/u1/clip/720p_000.ts", str(destination))
        assert downloaded.success
        assert destination.read_bytes() == source.read_bytes()

    def test_missing_object_is_not_found(self, local_storage, tmp_path) -> None:
        result = local_storage.download("media", "source/u1/missing.mp4", str(tmp_path / "in.mp4"))

        assert not result.success
        assert result.not_found
        assert "missing.mp4" in result.error_message

    def test_upload_of_missing_file_fails(self, local_storage, tmp_path) -> None:
        result = local_storage.upload(str(tmp_path / "gone.ts"), "media", "hls/a.ts")

        assert not result.success
        assert not result.not_found
        assert result.error_message

    def test_list_files_by_prefix(self, local_storage, tmp_path) -> None:
        source = tmp_path / "f"
        source.write_text("x")
        for key in ["hls/u1/a/master.m3u8", "hls/u1/a/1080p.m3u8", "hls/u2/b/master.m3u8"]:
            local_storage.upload(str(source), "media", key)

        assert local_storage.list_files("media", "hls/u1/") == [
            "hls/u1/a/1080p.m3u8",
            "hls/u1/a/master.m3u8",
        ]
        assert local_storage.list_files("other") == []


class TestS3Storage:
    """S3 backend against a mocked boto3 client."""

    def test_download(self, tmp_path) -> None:
        client = MagicMock()
        client.download_file.side_effect = lambda bucket, key, dest: open(dest, "wb").write(b"mp4")
        storage = S3Storage(StorageConfig(backend="s3"), client=client)

        destination = str(tmp_path / "input.mp4")
        result = storage.download("uploads", "source/u1/clip.mp4", destination)

        assert result.success
        assert result.file_size == 3
        client.download_file.assert_called_once_with("uploads", "source/u1/clip.mp4", destination)

    @pytest.mark.parametrize("code", ["404", "NoSuchKey", "NotFound"])
    def test_download_not_found(self, tmp_path, code) -> None:
        client = MagicMock()
        client.download_file.side_effect = _client_error(code, "HeadObject")
        storage = S3Storage(StorageConfig(backend="s3"), client=client)

        result = storage.download("uploads", "source/u1/clip.mp4", str(tmp_path / "in.mp4"))

        assert not result.success
        assert result.not_found

    def test_download_access_denied_is_not_not_found(self, tmp_path) -> None:
        client = MagicMock()
        client.download_file.side_effect = _client_error("403", "HeadObject")
        storage = S3Storage(StorageConfig(backend="s3"), client=client)

        result = storage.download("uploads", "source/u1/clip.mp4", str(tmp_path / "in.mp4"))

        assert not result.success
        assert not result.not_found

    def test_download_connection_error(self, tmp_path) -> None:
        client = MagicMock()
        client.download_file.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        storage = S3Storage(StorageConfig(backend="s3"), client=client)

        result = storage.download("uploads", "source/u1/clip.mp4", str(tmp_path / "in.mp4"))

        assert not result.success
        assert "https://s3" in result.error_message

    def test_upload_sets_content_type(self, tmp_path) -> None:
        client = MagicMock()
        client.put_object.return_value = {"ETag": '"abc123"'}
        storage = S3Storage(StorageConfig(backend="s3"), client=client)
        playlist = tmp_path / "master.m3u8"
        playlist.write_text("#EXTM3U")

        result = storage.upload(
            str(playlist),
            "uploads",
            "hls/u1/clip/master.m3u8",
            content_type="application/vnd.apple.mpegurl",
        )

        assert result.success
        assert result.etag == "abc123"
        kwargs = client.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "uploads"
        assert kwargs["Key"] == "hls/u1/clip/master.m3u8"
        assert kwargs["ContentType"] == "application/vnd.apple.mpegurl"

    def test_upload_failure(self, tmp_path) -> None:
        client = MagicMock()
        client.put_object.side_effect = _client_error("AccessDenied", "PutObject")
        storage = S3Storage(StorageConfig(backend="s3"), client=client)
        segment = tmp_path / "480p_000.ts"
        segment.write_bytes(b"\x47")

        result = storage.upload(str(segment), "uploads", "hls/u1/clip/480p_000.ts")

        assert not result.success
        assert "AccessDenied" in result.error_message

    def test_list_files_uses_paginator(self) -> None:
        client = MagicMock()
        client.get_paginator.return_value.paginate.return_value = [
            {"Contents": [{"Key": "hls/u1/clip/master.m3u8"}]},
            {"Contents": [{"Key": "hls/u1/clip/480p.m3u8"}]},
            {},
        ]
        storage = S3Storage(StorageConfig(backend="s3"), client=client)

        assert storage.list_files("uploads", "hls/u1/clip/") == [
            "hls/u1/clip/master.m3u8",
            "hls/u1/clip/480p.m3u8",
        ]
        client.get_paginator.assert_called_once_with("list_objects_v2")


class TestGetStorage:
    """Backend selection."""

    def test_local_backend(self, tmp_path) -> None:
        storage = get_storage(StorageConfig(backend="local", local_path=str(tmp_path)))
        assert isinstance(storage, LocalStorage)

    @pytest.mark.parametrize("backend", ["s3", "minio"])
    def test_s3_backends(self, backend) -> None:
        assert isinstance(get_storage(StorageConfig(backend=backend)), S3Storage)

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValueError):
            get_storage(StorageConfig(backend="ftp"))
