"""Trigger entry point.

The hosting platform invokes ``handler`` once per uploaded object with an
S3-style event notification.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError as SchemaValidationError

from hls_transcoder.core.config import Settings, settings as default_settings
from hls_transcoder.core.logging import clear_correlation_id, set_correlation_id, setup_logging
from hls_transcoder.core.storage import StorageBackend, get_storage
from hls_transcoder.core.tracing import flush_tracing, setup_tracing
from hls_transcoder.modules.notification.channels import PubSubChannel
from hls_transcoder.modules.notification.credentials import ServiceAccountCredentials
from hls_transcoder.modules.transcoding.errors import ValidationError
from hls_transcoder.modules.transcoding.ffmpeg import EncoderRunner, HLSTranscoder
from hls_transcoder.modules.transcoding.pipeline import PipelineConfig, TranscodePipeline
from hls_transcoder.modules.transcoding.schemas import CompletionMessage, SourceReference

logger = logging.getLogger(__name__)


def source_from_event(event: dict) -> SourceReference:
    """Extract the uploaded object from the first record of an S3 event.

    The key is returned as delivered (still form-encoded).
    """
    try:
        s3 = event["Records"][0]["s3"]
        return SourceReference(bucket=s3["bucket"]["name"], key=s3["object"]["key"])
    except (KeyError, IndexError, TypeError) as e:
        raise ValidationError("Event does not contain an S3 object record", repr(e)) from e
    except SchemaValidationError as e:
        raise ValidationError("Event S3 object record is incomplete", str(e)) from e


def process_source(
    source: SourceReference,
    config: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    runner: Optional[EncoderRunner] = None,
    publisher_client=None,
) -> CompletionMessage:
    """Run the pipeline for one source with collaborators built from settings.

    Args:
        source: Uploaded object
        config: Settings (module settings if not provided)
        storage: Object store (built from settings if not provided)
        runner: Encoder runner (child process if not provided)
        publisher_client: Pub/Sub publisher client (built from credentials if not provided)

    Returns:
        Published completion message
    """
    config = config or default_settings

    with ServiceAccountCredentials(config.GCP_SERVICE_KEY, directory=config.WORK_DIR) as creds:
        channel = PubSubChannel(
            project_id=config.PROJECT_ID or creds.project_id or "",
            credentials=creds.credentials,
            client=publisher_client,
            timeout=config.PUBLISH_TIMEOUT_SECONDS,
        )
        pipeline = TranscodePipeline(
            storage=storage or get_storage(),
            transcoder=HLSTranscoder(ffmpeg_path=config.FFMPEG_PATH, runner=runner),
            channel=channel,
            config=PipelineConfig(
                work_dir=config.WORK_DIR,
                public_base_url=config.CLOUDFRONT_URL,
                topic=config.PUBSUB_TOPIC,
            ),
        )
        try:
            return pipeline.run(source)
        finally:
            channel.close()


def handler(event: dict, context: Any = None) -> dict:
    """Platform entry point: transcode the uploaded object named by ``event``.

    Returns:
        Completion message with camelCase keys
    """
    setup_logging(level=default_settings.LOG_LEVEL, json_format=default_settings.LOG_JSON)
    if default_settings.TRACING_ENABLED:
        setup_tracing(
            service_name=default_settings.PROJECT_NAME,
            service_version=default_settings.VERSION,
            environment=default_settings.ENVIRONMENT,
            otlp_endpoint=default_settings.OTLP_ENDPOINT,
        )

    request_id = getattr(context, "aws_request_id", None)
    if request_id:
        set_correlation_id(request_id)
    else:
        clear_correlation_id()

    logger.debug("Received event: %s", json.dumps(event, default=str))

    try:
        source = source_from_event(event)
        return process_source(source).to_payload()
    finally:
        flush_tracing()
