"""Errors raised by the transcode pipeline.

Every error is terminal for the invocation. ``stage`` names the pipeline stage
that failed so the platform logs are enough to diagnose a run.
"""

from typing import Optional


class PipelineError(Exception):
    """Base exception for transcode pipeline errors."""

    stage: str = "pipeline"

    def __init__(self, message: str, cause: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        text = f"[{self.stage}] {self.message}"
        if self.cause:
            text = f"{text}: {self.cause}"
        return text


class ConfigurationError(PipelineError):
    """Raised when a required setting or credential is missing or unreadable."""

    stage = "configure"


class ValidationError(PipelineError):
    """Raised when the source key is not ``source/<owner>/<filename>.<ext>``."""

    stage = "validate"


class FetchError(PipelineError):
    """Raised when the source object cannot be downloaded."""

    stage = "fetch"

    def __init__(
        self,
        message: str,
        cause: Optional[str] = None,
        not_found: bool = False,
    ):
        super().__init__(message, cause)
        self.not_found = not_found


class EncodeError(PipelineError):
    """Raised when the encoder exits non-zero for a rendition."""

    stage = "encode"

    def __init__(self, profile: str, cause: Optional[str] = None):
        super().__init__(f"encoding failed for rendition {profile}", cause)
        self.profile = profile


class UploadError(PipelineError):
    """Raised when an output file cannot be written to the object store."""

    stage = "upload"

    def __init__(self, key: str, cause: Optional[str] = None):
        super().__init__(f"upload failed for {key}", cause)
        self.key = key


class PublishError(PipelineError):
    """Raised when the completion message cannot be published."""

    stage = "notify"
