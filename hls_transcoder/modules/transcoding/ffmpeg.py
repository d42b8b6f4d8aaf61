"""FFmpeg HLS encoding for the rendition ladder.

Invokes the encoder once per rendition, strictly in ladder order, and stops
at the first failure. Files from renditions that already finished are left
in the output directory; the pipeline's cleanup removes them.
"""

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from hls_transcoder.core.logging import log_error, log_info
from hls_transcoder.modules.transcoding.abr import (
    DEFAULT_LADDER,
    RenditionOutput,
    SEGMENT_EXTENSION,
    RenditionProfile,
    validate_ladder,
)
from hls_transcoder.modules.transcoding.errors import EncodeError

logger = logging.getLogger(__name__)

AUDIO_SAMPLE_RATE = 48000
AUDIO_BITRATE = "128k"
VIDEO_PRESET = "veryslow"
VIDEO_CRF = 23
# 48 frames is 2 seconds at 24fps; no scene-cut keyframes so segments align
KEYFRAME_INTERVAL = 48
SEGMENT_DURATION = 4
STDERR_TAIL_CHARS = 2000


@dataclass
class EncoderResult:
    """Exit status and captured output of one encoder run."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def success(self) -> bool:
        return self.returncode == 0


EncoderRunner = Callable[[list[str]], EncoderResult]


def run_encoder(args: list[str]) -> EncoderResult:
    """Run the encoder as a child process and wait for it to exit."""
    process = subprocess.run(args, capture_output=True, text=True)
    return EncoderResult(
        returncode=process.returncode,
        stdout=process.stdout or "",
        stderr=process.stderr or "",
    )


def build_scale_filter(profile: RenditionProfile) -> str:
    """Build the scale+pad filter graph for a rendition.

    Downscales to fit inside the profile's box keeping aspect ratio, never
    upscales, then pads each dimension up to an even number as H.264 requires.
    """
    factor = f"min(1\\,min({profile.width}/iw\\,{profile.height}/ih))"
    return (
        f"scale=w=trunc(iw*{factor}):h=trunc(ih*{factor})"
        ":force_original_aspect_ratio=decrease,"
        "pad=ceil(iw/2)*2:ceil(ih/2)*2"
    )


class HLSTranscoder:
    """FFmpeg-based HLS transcoder for a fixed rendition ladder."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        runner: Optional[EncoderRunner] = None,
    ):
        """Initialize transcoder.

        Args:
            ffmpeg_path: Path to ffmpeg binary
            runner: Callable that executes an encoder command line
        """
        self.ffmpeg_path = ffmpeg_path
        self.runner = runner or run_encoder

    def build_command(
        self,
        input_path: str,
        output_dir: str,
        profile: RenditionProfile,
    ) -> list[str]:
        """Build the FFmpeg command for one rendition.

        Args:
            input_path: Path to the source video
            output_dir: Directory receiving playlist and segments
            profile: Rendition to encode

        Returns:
            FFmpeg command as list of arguments
        """
        segment_path = os.path.join(output_dir, profile.segment_pattern)
        playlist_path = os.path.join(output_dir, profile.playlist_name)

        return [
            self.ffmpeg_path,
            "-y",
            "-i", input_path,
            "-vf", build_scale_filter(profile),
            # Audio settings
            "-c:a", "aac",
            "-ar", str(AUDIO_SAMPLE_RATE),
            "-b:a", AUDIO_BITRATE,
            # Video settings
            "-c:v", "h264",
            "-profile:v", "main",
            "-preset", VIDEO_PRESET,
            "-tune", "film",
            "-crf", str(VIDEO_CRF),
            "-sc_threshold", "0",
            "-g", str(KEYFRAME_INTERVAL),
            "-keyint_min", str(KEYFRAME_INTERVAL),
            # HLS settings
            "-hls_time", str(SEGMENT_DURATION),
            "-hls_playlist_type", "vod",
            "-b:v", profile.bitrate,
            "-maxrate", profile.bitrate,
            "-bufsize", f"{profile.bitrate_kbps // 2}k",
            "-hls_segment_filename", segment_path,
            playlist_path,
        ]

    def encode_rendition(
        self,
        input_path: str,
        output_dir: str,
        profile: RenditionProfile,
    ) -> RenditionOutput:
        """Encode one rendition to a playlist plus segments.

        Raises:
            EncodeError: If the encoder cannot be started or exits non-zero
        """
        cmd = self.build_command(input_path, output_dir, profile)
        log_info(logger, f"Encoding rendition {profile.name}", stage="encode", profile=profile.name)

        try:
            result = self.runner(cmd)
        except OSError as e:
            log_error(logger, f"Encoder could not be started for {profile.name}", e, profile=profile.name)
            raise EncodeError(profile.name, str(e)) from e

        if not result.success:
            stderr_tail = result.stderr[-STDERR_TAIL_CHARS:]
            log_error(
                logger,
                f"FFmpeg error for {profile.name}",
                profile=profile.name,
                returncode=result.returncode,
                stderr=stderr_tail,
            )
            raise EncodeError(
                profile.name,
                f"encoder exited with status {result.returncode}: {stderr_tail.strip()}",
            )

        logger.debug("FFmpeg output for %s: %s", profile.name, result.stderr)

        return RenditionOutput(
            profile=profile,
            playlist_path=os.path.join(output_dir, profile.playlist_name),
            segment_paths=self._collect_segments(output_dir, profile),
        )

    def encode_ladder(
        self,
        input_path: str,
        output_dir: str,
        profiles: Sequence[RenditionProfile] = DEFAULT_LADDER,
    ) -> list[RenditionOutput]:
        """Encode every rendition of the ladder, in order, failing fast.

        No partial ladder is ever returned: the first failing rendition
        raises and the remaining renditions are not attempted.

        Args:
            input_path: Path to the source video
            output_dir: Directory for playlists and segments
            profiles: Ordered rendition ladder

        Returns:
            One RenditionOutput per profile, in ladder order
        """
        is_valid, errors = validate_ladder(profiles)
        if not is_valid:
            raise ValueError("; ".join(errors))

        outputs = []
        for profile in profiles:
            outputs.append(self.encode_rendition(input_path, output_dir, profile))
            log_info(logger, f"HLS conversion successful for {profile.name}", profile=profile.name)

        return outputs

    @staticmethod
    def _collect_segments(output_dir: str, profile: RenditionProfile) -> list[str]:
        suffix = f".{SEGMENT_EXTENSION}"
        return sorted(
            os.path.join(output_dir, name)
            for name in os.listdir(output_dir)
            if name.startswith(profile.segment_prefix) and name.endswith(suffix)
        )
