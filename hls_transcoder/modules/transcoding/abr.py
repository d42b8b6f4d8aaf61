"""Adaptive Bitrate (ABR) ladder and master playlist synthesis.

The ladder is fixed: every source is encoded to the same renditions, in the
same order, and the master playlist lists them in that order.
"""

import os
from dataclasses import dataclass, field

HLS_VERSION = 3
PLAYLIST_EXTENSION = "m3u8"
SEGMENT_EXTENSION = "ts"


@dataclass(frozen=True)
class RenditionProfile:
    """A single rendition in the ABR ladder."""
    name: str
    width: int
    height: int
    bitrate_kbps: int

    @property
    def bitrate(self) -> str:
        """Bitrate in encoder notation, e.g. ``5000k``."""
        return f"{self.bitrate_kbps}k"

    @property
    def bandwidth(self) -> int:
        """Peak bandwidth in bits per second, as declared in the master playlist."""
        return self.bitrate_kbps * 1000

    @property
    def playlist_name(self) -> str:
        return f"{self.name}.{PLAYLIST_EXTENSION}"

    @property
    def segment_pattern(self) -> str:
        """Encoder segment filename template (3-digit zero-padded index)."""
        return f"{self.name}_%03d.{SEGMENT_EXTENSION}"

    @property
    def segment_prefix(self) -> str:
        return f"{self.name}_"


DEFAULT_LADDER: tuple[RenditionProfile, ...] = (
    RenditionProfile(name="1080p", width=1920, height=1080, bitrate_kbps=5000),
    RenditionProfile(name="720p", width=1280, height=720, bitrate_kbps=3000),
    RenditionProfile(name="480p", width=854, height=480, bitrate_kbps=1500),
)


@dataclass
class RenditionOutput:
    """Files produced for one rendition by a successful encode."""
    profile: RenditionProfile
    playlist_path: str
    segment_paths: list[str] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.profile.name

    @property
    def bitrate(self) -> str:
        return self.profile.bitrate


def validate_ladder(profiles) -> tuple[bool, list[str]]:
    """Validate a rendition ladder.

    Args:
        profiles: Ordered rendition profiles

    Returns:
        Tuple of (is_valid, error_messages)
    """
    errors = []

    if not profiles:
        errors.append("Rendition ladder must have at least one profile")

    seen = set()
    for profile in profiles:
        if profile.name in seen:
            errors.append(f"Duplicate rendition name: {profile.name}")
        seen.add(profile.name)

        if profile.width <= 0 or profile.height <= 0:
            errors.append(f"Dimensions must be positive for {profile.name}")

        if profile.bitrate_kbps <= 0:
            errors.append(f"Bitrate must be positive for {profile.name}")

    return len(errors) == 0, errors


def synthesize_master_playlist(outputs: list[RenditionOutput]) -> str:
    """Build the master playlist for a complete rendition ladder.

    Resolution is the profile's declared size, not the encoded frame size,
    which can differ by the even-dimension padding. Playlists are referenced
    by bare filename since they sit next to the master playlist.

    Args:
        outputs: Rendition outputs in ladder order

    Returns:
        Master playlist text
    """
    if not outputs:
        raise ValueError("Cannot synthesize a master playlist without renditions")

    lines = ["#EXTM3U", f"#EXT-X-VERSION:{HLS_VERSION}"]
    for output in outputs:
        profile = output.profile
        lines.append(
            f"#EXT-X-STREAM-INF:BANDWIDTH={profile.bandwidth},"
            f"RESOLUTION={profile.width}x{profile.height}"
        )
        lines.append(os.path.basename(output.playlist_path))

    return "\n".join(lines)
