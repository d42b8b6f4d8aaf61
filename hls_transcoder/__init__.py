"""HLS Transcoder.

Converts one uploaded source video into an adaptive-bitrate HLS rendition set,
publishes it to object storage and announces completion on Pub/Sub.

Modules:
    - core: Configuration, logging, tracing, object storage
    - modules.transcoding: Key sanitizing, FFmpeg ladder, master playlist, pipeline
    - modules.notification: Service-account credentials and Pub/Sub delivery
"""

__version__ = "0.1.0"
