"""Transcoding module for HLS rendition ladders.

Implements source key sanitizing, FFmpeg encoding of a fixed rendition
ladder, master playlist synthesis, and the pipeline that publishes the
result to object storage.
"""
