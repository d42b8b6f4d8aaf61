"""Notification module for pipeline completion messages.

Publishes completion messages to Google Cloud Pub/Sub using a service account
that is scoped to a single invocation.
"""

from hls_transcoder.modules.notification.channels import NotificationChannel, PubSubChannel
from hls_transcoder.modules.notification.credentials import ServiceAccountCredentials

__all__ = [
    "NotificationChannel",
    "PubSubChannel",
    "ServiceAccountCredentials",
]
