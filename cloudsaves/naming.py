"""Save name <-> tag identity codec.

A save named ``My run`` created at epoch-millis 1700000000000 is stored as
the annotated tag ``save_1700000000000_TXkgcnVu``. The name fragment is
URL-safe base64 of the UTF-8 bytes with padding stripped, so any Unicode
name survives the round trip and the tag stays ref-safe.

Decoding never raises: an undecodable fragment is surfaced as-is so one bad
tag cannot break a listing.
"""

from __future__ import annotations

import base64
import binascii
import re
import time
from dataclasses import dataclass

TAG_PREFIX = "save_"
TAG_PATTERN = re.compile(r"^save_(\d+)_(.+)$")
TAG_GLOB = f"{TAG_PREFIX}*"


@dataclass(frozen=True)
class ParsedTag:
    """A tag that matched the save pattern."""

    tag: str
    millis: int
    token: str
    name: str  # Decoded name, or the raw token if undecodable
    decoded: bool


def encode_name(name: str) -> str:
    """Encode a display name into a tag-safe token."""
    encoded = base64.urlsafe_b64encode(name.encode("utf-8")).decode("ascii")
    return encoded.rstrip("=")


def try_decode_name(token: str) -> str | None:
    """Decode a token, or None if it is not a valid encoding."""
    if not token or not re.fullmatch(r"[A-Za-z0-9_-]+=*", token):
        return None
    stripped = token.rstrip("=")
    padded = stripped + "=" * (-len(stripped) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def decode_name(token: str) -> str:
    """Decode a token, falling back to the raw token."""
    decoded = try_decode_name(token)
    return token if decoded is None else decoded


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def build_tag(name: str, millis: int | None = None) -> str:
    """Mint a tag identity for a save name."""
    if millis is None:
        millis = now_millis()
    return f"{TAG_PREFIX}{millis}_{encode_name(name)}"


def parse_tag(tag: str) -> ParsedTag | None:
    """Parse a save tag; foreign tags return None."""
    match = TAG_PATTERN.match(tag)
    if not match:
        return None
    token = match.group(2)
    decoded = try_decode_name(token)
    return ParsedTag(
        tag=tag,
        millis=int(match.group(1)),
        token=token,
        name=token if decoded is None else decoded,
        decoded=decoded is not None,
    )


def display_name(tag: str) -> str:
    """Best-effort display name for any tag."""
    parsed = parse_tag(tag)
    return parsed.name if parsed else tag
