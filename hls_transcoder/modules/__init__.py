"""Application modules.

This package contains the feature modules of the HLS transcoder:
- transcoding: Source key parsing, FFmpeg rendition ladder, master playlist, pipeline
- notification: Completion messages over Google Cloud Pub/Sub
"""
