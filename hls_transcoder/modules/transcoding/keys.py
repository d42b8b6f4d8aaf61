"""Source key parsing and output naming.

Turns an untrusted upload key into the owner key and a storage/URL safe base
name, and derives every output key and URL from them.
"""

import os
import re
from typing import NamedTuple
from urllib.parse import unquote_plus

from hls_transcoder.modules.transcoding.errors import ValidationError

SOURCE_KEY_PATTERN = re.compile(r"^source/[^/]+/[^/]+\.[^/]+$")

# Runs of disallowed characters, and runs of two or more underscores
_SEPARATOR_RUN = re.compile(r"(?:[^A-Za-z0-9._]|_{2,})+")
_REPEATED_HYPHENS = re.compile(r"-+")
# Leading hyphens, and trailing hyphens or underscores
_EDGE_PUNCTUATION = re.compile(r"^-+|[-_]+$")

OUTPUT_ROOT = "hls"
MASTER_PLAYLIST_NAME = "master.m3u8"

# Path segments a client or filesystem would resolve instead of using literally
_RELATIVE_SEGMENTS = frozenset((".", ".."))


class ParsedKey(NamedTuple):
    owner_key: str
    base_name: str


def decode_key(raw_key: str) -> str:
    """Decode an object key as delivered in an S3 event notification.

    Event keys are form-encoded: ``+`` stands for a space and everything else
    is percent-encoded.
    """
    return unquote_plus(raw_key)


def sanitize_basename(name: str) -> str:
    """Make an extension-less file name safe for storage keys and URLs.

    Deterministic and idempotent.
    """
    cleaned = _SEPARATOR_RUN.sub("-", name)
    cleaned = _REPEATED_HYPHENS.sub("-", cleaned)
    return _EDGE_PUNCTUATION.sub("", cleaned)


def sanitize(filename: str) -> str:
    """Strip the extension from ``filename`` and sanitize what remains.

    >>> sanitize("My Video (1).mp4")
    'My-Video-1'
    """
    stem, _ = os.path.splitext(filename)
    return sanitize_basename(stem)


def parse(raw_key: str) -> ParsedKey:
    """Validate a raw source key and extract ``(owner_key, base_name)``.

    The owner key is used verbatim. Raises ``ValidationError`` when the
    decoded key is not ``source/<owner>/<filename>.<ext>``, when nothing
    usable is left of the filename after sanitizing, or when the owner key or
    base name is a bare ``.`` or ``..`` that would escape the output prefix.
    """
    key = decode_key(raw_key)
    if not SOURCE_KEY_PATTERN.match(key):
        raise ValidationError(
            f"Invalid source key format: {key}",
            "expected format: source/<ownerKey>/<filename>.<extension>",
        )

    _, owner_key, filename = key.split("/")
    if owner_key in _RELATIVE_SEGMENTS:
        raise ValidationError(
            f"Invalid source key format: {key}",
            f"owner key {owner_key!r} is a relative path segment",
        )

    base_name = sanitize(filename)
    if not base_name or base_name in _RELATIVE_SEGMENTS:
        raise ValidationError(
            f"Invalid source key format: {key}",
            f"filename {filename!r} has no usable characters",
        )

    return ParsedKey(owner_key=owner_key, base_name=base_name)


def output_prefix(owner_key: str, base_name: str) -> str:
    """Storage prefix every rendition file and the master playlist go under."""
    return f"{OUTPUT_ROOT}/{owner_key}/{base_name}/"


def master_playlist_url(base_url: str, owner_key: str, base_name: str) -> str:
    """Externally reachable URL of the master playlist."""
    return f"{base_url.rstrip('/')}/{owner_key}/{base_name}/{MASTER_PLAYLIST_NAME}"
