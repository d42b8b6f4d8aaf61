"""Object storage supporting multiple backends.

Supports: local filesystem and S3 (or any S3-compatible store such as MinIO).
Both the source upload and the HLS output live in buckets addressed per call,
since the bucket comes from the trigger event.
"""

import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError

from hls_transcoder.core.config import settings


_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass
class StorageResult:
    """Result of a storage operation."""
    success: bool
    bucket: str
    key: str
    file_size: int = 0
    etag: Optional[str] = None
    not_found: bool = False
    error_message: Optional[str] = None


@dataclass
class StorageConfig:
    """Storage configuration."""
    backend: str  # local, s3
    region: str = ""
    access_key: str = ""
    secret_key: str = ""
    endpoint_url: Optional[str] = None
    use_ssl: bool = True
    local_path: str = "./storage"


class StorageBackend(ABC):
    """Abstract base class for storage backends."""

    @abstractmethod
    def download(self, bucket: str, key: str, destination: str) -> StorageResult:
        """Download an object to a local file."""
        pass

    @abstractmethod
    def upload(
        self,
        file_path: str,
        bucket: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a local file as an object."""
        pass

    @abstractmethod
    def list_files(self, bucket: str, prefix: str = "") -> list[str]:
        """List object keys with given prefix."""
        pass


class LocalStorage(StorageBackend):
    """Local filesystem storage backend.

    Buckets map to directories under ``local_path``.
    """

    def __init__(self, config: StorageConfig):
        self.base_path = Path(config.local_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _get_full_path(self, bucket: str, key: str) -> Path:
        return self.base_path / bucket / key

    def download(self, bucket: str, key: str, destination: str) -> StorageResult:
        """Copy an object from local storage to ``destination``."""
        src_path = self._get_full_path(bucket, key)
        if not src_path.is_file():
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                not_found=True,
                error_message=f"Object not found: {bucket}/{key}",
            )
        try:
            shutil.copyfile(src_path, destination)
            return StorageResult(
                success=True,
                bucket=bucket,
                key=key,
                file_size=os.path.getsize(destination),
            )
        except OSError as e:
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                error_message=str(e),
            )

    def upload(
        self,
        file_path: str,
        bucket: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to local storage."""
        try:
            dest_path = self._get_full_path(bucket, key)
            dest_path.parent.mkdir(parents=True, exist_ok=True)

            shutil.copyfile(file_path, dest_path)

            return StorageResult(
                success=True,
                bucket=bucket,
                key=key,
                file_size=dest_path.stat().st_size,
            )
        except OSError as e:
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                error_message=str(e),
            )

    def list_files(self, bucket: str, prefix: str = "") -> list[str]:
        """List files with given prefix."""
        bucket_path = self.base_path / bucket
        if not bucket_path.exists():
            return []

        files = []
        for path in bucket_path.rglob("*"):
            if path.is_file():
                rel_path = path.relative_to(bucket_path).as_posix()
                if rel_path.startswith(prefix):
                    files.append(rel_path)
        return sorted(files)


class S3Storage(StorageBackend):
    """S3/MinIO compatible storage backend."""

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self._client = client

    def _get_client(self):
        """Get or create S3 client."""
        if self._client is None:
            import boto3
            from botocore.config import Config as BotoConfig

            client_kwargs = {"service_name": "s3"}

            if self.config.region:
                client_kwargs["region_name"] = self.config.region

            # Without explicit keys boto3 falls back to the execution role
            if self.config.access_key and self.config.secret_key:
                client_kwargs["aws_access_key_id"] = self.config.access_key
                client_kwargs["aws_secret_access_key"] = self.config.secret_key

            # For MinIO or other S3-compatible storage
            if self.config.endpoint_url:
                client_kwargs["endpoint_url"] = self.config.endpoint_url
                client_kwargs["config"] = BotoConfig(
                    signature_version="s3v4",
                    s3={"addressing_style": "path"},
                )
                if not self.config.use_ssl:
                    client_kwargs["use_ssl"] = False

            self._client = boto3.client(**client_kwargs)

        return self._client

    def download(self, bucket: str, key: str, destination: str) -> StorageResult:
        """Download an object from S3/MinIO."""
        try:
            client = self._get_client()
            client.download_file(bucket, key, destination)
            return StorageResult(
                success=True,
                bucket=bucket,
                key=key,
                file_size=os.path.getsize(destination),
            )
        except ClientError as e:
            code = str(e.response.get("Error", {}).get("Code", ""))
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                not_found=code in _NOT_FOUND_CODES,
                error_message=str(e),
            )
        except (BotoCoreError, OSError) as e:
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                error_message=str(e),
            )

    def upload(
        self,
        file_path: str,
        bucket: str,
        key: str,
        content_type: str = "application/octet-stream",
    ) -> StorageResult:
        """Upload a file to S3/MinIO."""
        try:
            client = self._get_client()
            file_size = os.path.getsize(file_path)

            with open(file_path, "rb") as f:
                response = client.put_object(
                    Bucket=bucket,
                    Key=key,
                    Body=f,
                    ContentType=content_type,
                )

            etag = response.get("ETag", "").strip('"')

            return StorageResult(
                success=True,
                bucket=bucket,
                key=key,
                file_size=file_size,
                etag=etag,
            )
        except (BotoCoreError, ClientError, OSError) as e:
            return StorageResult(
                success=False,
                bucket=bucket,
                key=key,
                error_message=str(e),
            )

    def list_files(self, bucket: str, prefix: str = "") -> list[str]:
        """List files with given prefix."""
        client = self._get_client()
        paginator = client.get_paginator("list_objects_v2")

        files = []
        for page in paginator.paginate(Bucket=bucket, Prefix=prefix):
            for obj in page.get("Contents", []):
                files.append(obj["Key"])
        return files


def get_storage(config: Optional[StorageConfig] = None) -> StorageBackend:
    """Build the storage backend selected by configuration.

    Args:
        config: Storage configuration (uses settings if not provided)

    Returns:
        Storage backend instance
    """
    if config is None:
        config = StorageConfig(
            backend=settings.STORAGE_BACKEND,
            region=settings.STORAGE_REGION,
            access_key=settings.STORAGE_ACCESS_KEY,
            secret_key=settings.STORAGE_SECRET_KEY,
            endpoint_url=settings.STORAGE_ENDPOINT_URL,
            use_ssl=settings.STORAGE_USE_SSL,
            local_path=settings.LOCAL_STORAGE_PATH,
        )

    if config.backend == "local":
        return LocalStorage(config)
    if config.backend in ("s3", "minio"):
        return S3Storage(config)

    raise ValueError(f"Unsupported storage backend: {config.backend}")
