"""Scoped service-account credentials for the notification channel.

The service account arrives as a base64 blob in configuration. It is decoded
once per invocation into a private file that only lives for the ``with``
block; nothing process-wide (such as GOOGLE_APPLICATION_CREDENTIALS) is
touched.
"""

import base64
import binascii
import json
import logging
import os
import tempfile
from typing import Optional

from google.oauth2 import service_account

from hls_transcoder.core.logging import log_info, log_warning
from hls_transcoder.modules.transcoding.errors import ConfigurationError

logger = logging.getLogger(__name__)


class ServiceAccountCredentials:
    """Context manager holding decoded service-account credentials.

    Usage:
        with ServiceAccountCredentials(settings.GCP_SERVICE_KEY, work_dir) as creds:
            channel = PubSubChannel(creds.project_id, credentials=creds.credentials)
    """

    def __init__(self, encoded_key: str, directory: Optional[str] = None):
        """Initialize with the base64-encoded service account JSON.

        Args:
            encoded_key: Base64 service account key blob
            directory: Where the decoded key file is written (system temp if None)
        """
        self.encoded_key = encoded_key
        self.directory = directory
        self.path: Optional[str] = None
        self.credentials: Optional[service_account.Credentials] = None
        self.project_id: Optional[str] = None

    def __enter__(self) -> "ServiceAccountCredentials":
        if not self.encoded_key:
            raise ConfigurationError("Environment variable GCP_SERVICE_KEY not set")

        try:
            key_json = base64.b64decode(self.encoded_key, validate=True).decode("utf-8")
            key_info = json.loads(key_json)
        except (binascii.Error, ValueError) as e:
            raise ConfigurationError("GCP_SERVICE_KEY is not valid base64 JSON", str(e)) from e
        if not isinstance(key_info, dict):
            raise ConfigurationError("GCP_SERVICE_KEY does not hold a service account key")
        project_id = key_info.get("project_id")

        try:
            if self.directory:
                os.makedirs(self.directory, exist_ok=True)
            fd, self.path = tempfile.mkstemp(prefix="gcp_service_key_", suffix=".json", dir=self.directory)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(key_json)
            self.credentials = service_account.Credentials.from_service_account_file(self.path)
        except (OSError, ValueError) as e:
            self._remove_key_file()
            raise ConfigurationError("Could not load service account credentials", str(e)) from e

        self.project_id = project_id
        log_info(logger, "Google Cloud authentication initialized.")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._remove_key_file()

    def _remove_key_file(self) -> None:
        if self.path is None:
            return
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            log_warning(logger, f"Could not remove credential file {self.path}: {e}")
        self.path = None
