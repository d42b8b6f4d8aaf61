"""Transcode pipeline orchestration.

Runs one source upload through every stage, strictly in order and with a
single attempt each:

    fetch -> validate -> encode ladder -> master playlist -> upload -> notify

and always finishes with cleanup of the local working set. The first error
is logged, recorded on the stage span and re-raised unchanged after cleanup.
Uploads are not transactional: when one upload fails, the files already
stored under the output prefix stay there and are overwritten by the next
run for the same source.
"""

import logging
import os
import shutil
from dataclasses import dataclass, field
from typing import Sequence

from hls_transcoder.core.logging import log_error, log_info, log_warning
from hls_transcoder.core.storage import StorageBackend
from hls_transcoder.core.tracing import create_span
from hls_transcoder.modules.notification.channels import NotificationChannel
from hls_transcoder.modules.transcoding import keys
from hls_transcoder.modules.transcoding.abr import (
    DEFAULT_LADDER,
    RenditionOutput,
    RenditionProfile,
    synthesize_master_playlist,
)
from hls_transcoder.modules.transcoding.errors import FetchError, PipelineError, UploadError
from hls_transcoder.modules.transcoding.ffmpeg import HLSTranscoder
from hls_transcoder.modules.transcoding.schemas import CompletionMessage, SourceReference

logger = logging.getLogger(__name__)

INPUT_FILENAME = "input.mp4"
OUTPUT_DIRNAME = "output"

CONTENT_TYPES = {
    ".m3u8": "application/vnd.apple.mpegurl",
    ".ts": "video/MP2T",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class PipelineConfig:
    """Per-deployment pipeline settings."""
    work_dir: str
    public_base_url: str
    topic: str
    profiles: Sequence[RenditionProfile] = field(default_factory=lambda: DEFAULT_LADDER)

    @property
    def input_path(self) -> str:
        return os.path.join(self.work_dir, INPUT_FILENAME)

    @property
    def output_dir(self) -> str:
        return os.path.join(self.work_dir, OUTPUT_DIRNAME)


class TranscodePipeline:
    """Orchestrates one source upload into a published HLS rendition set."""

    def __init__(
        self,
        storage: StorageBackend,
        transcoder: HLSTranscoder,
        channel: NotificationChannel,
        config: PipelineConfig,
    ):
        self.storage = storage
        self.transcoder = transcoder
        self.channel = channel
        self.config = config

    def run(self, source: SourceReference) -> CompletionMessage:
        """Transcode ``source`` and announce the result.

        Args:
            source: Uploaded object from the trigger

        Returns:
            The completion message that was published

        Raises:
            PipelineError: The first failing stage's error, after cleanup
        """
        log_info(logger, f"Source Bucket: {source.bucket}", bucket=source.bucket)
        log_info(logger, f"Source Key: {source.key}", object_key=source.key)

        try:
            with create_span("hls.fetch", {"hls.bucket": source.bucket, "hls.key": source.key}):
                self._fetch(source)

            with create_span("hls.validate"):
                owner_key, base_name = keys.parse(source.key)
                prefix = keys.output_prefix(owner_key, base_name)
            log_info(logger, f"Unique Key: {owner_key}", owner_key=owner_key)
            log_info(logger, f"Target Prefix: {prefix}", prefix=prefix)

            with create_span("hls.encode", {"hls.renditions": len(self.config.profiles)}):
                outputs = self._encode()

            with create_span("hls.master_playlist"):
                self._write_master_playlist(outputs)

            with create_span("hls.upload", {"hls.prefix": prefix}):
                uploaded = self._upload_all(source.bucket, prefix)

            message = CompletionMessage(
                owner_key=owner_key,
                master_playlist_url=keys.master_playlist_url(
                    self.config.public_base_url, owner_key, base_name
                ),
            )
            with create_span("hls.notify", {"hls.topic": self.config.topic}):
                self.channel.publish(self.config.topic, message.to_payload())

            log_info(
                logger,
                "Transcode completed",
                owner_key=owner_key,
                uploaded_files=len(uploaded),
                master_playlist=message.master_playlist_url,
            )
            return message
        except PipelineError as e:
            log_error(logger, "Error during processing", e, stage=e.stage)
            raise
        except Exception as e:
            log_error(logger, "Unexpected error during processing", e)
            raise
        finally:
            self._cleanup()

    def _fetch(self, source: SourceReference) -> None:
        os.makedirs(self.config.work_dir, exist_ok=True)
        key = keys.decode_key(source.key)

        result = self.storage.download(source.bucket, key, self.config.input_path)
        if not result.success:
            raise FetchError(
                f"Could not fetch {source.bucket}/{key}",
                result.error_message,
                not_found=result.not_found,
            )

        log_info(
            logger,
            f"Downloaded file to {self.config.input_path}, Size: {result.file_size} bytes",
            file_size=result.file_size,
        )

    def _encode(self) -> list[RenditionOutput]:
        output_dir = self.config.output_dir
        # A run killed by the platform deadline may have left files behind
        if os.path.isdir(output_dir):
            shutil.rmtree(output_dir)
        os.makedirs(output_dir)

        return self.transcoder.encode_ladder(
            self.config.input_path,
            output_dir,
            self.config.profiles,
        )

    def _write_master_playlist(self, outputs: list[RenditionOutput]) -> str:
        path = os.path.join(self.config.output_dir, keys.MASTER_PLAYLIST_NAME)
        with open(path, "w", encoding="utf-8") as f:
            f.write(synthesize_master_playlist(outputs))

        log_info(logger, f"Master playlist created at {path}")
        return path

    def _upload_all(self, bucket: str, prefix: str) -> list[str]:
        """Upload every file of the output directory under ``prefix``.

        Stops at the first failed upload.
        """
        uploaded = []
        for name in sorted(os.listdir(self.config.output_dir)):
            file_path = os.path.join(self.config.output_dir, name)
            if not os.path.isfile(file_path):
                continue

            key = f"{prefix}{name}"
            content_type = CONTENT_TYPES.get(os.path.splitext(name)[1], DEFAULT_CONTENT_TYPE)
            result = self.storage.upload(file_path, bucket, key, content_type=content_type)
            if not result.success:
                raise UploadError(key, result.error_message)

            logger.debug("Uploaded %s to s3://%s/%s", file_path, bucket, key)
            uploaded.append(key)

        log_info(logger, f"Uploaded {len(uploaded)} files to s3://{bucket}/{prefix}", prefix=prefix)
        return uploaded

    def _cleanup(self) -> None:
        """Remove the local working set without masking the run's outcome."""
        input_path = self.config.input_path
        output_dir = self.config.output_dir

        if os.path.lexists(input_path):
            try:
                os.remove(input_path)
            except OSError as e:
                log_warning(logger, f"Could not remove input file {input_path}: {e}")

        if os.path.isdir(output_dir):
            try:
                shutil.rmtree(output_dir)
            except OSError as e:
                log_warning(logger, f"Could not remove output directory {output_dir}: {e}")
