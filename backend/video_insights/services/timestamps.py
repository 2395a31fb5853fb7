"""
MM:SS timestamp helpers shared by prompts, transcripts and deep links.
"""
import re
from urllib.parse import urlsplit

_TIMESTAMP_RE = re.compile(r"(\d{1,3}):([0-5]\d)")


def format_timestamp(offset_ms: int) -> str:
    """
    Render a caption offset as MM:SS.

    Minutes are not wrapped into hours, so an offset past the hour mark
    renders as e.g. "61:01".

    Args:
        offset_ms: Offset from the start of the video in milliseconds

    Returns:
        Zero-padded "MM:SS" string
    """
    offset_ms = int(offset_ms)
    if offset_ms < 0:
        raise ValueError(f"Offset must be non-negative, got {offset_ms}")
    minutes = offset_ms // 60000
    seconds = (offset_ms % 60000) // 1000
    return f"{minutes:02d}:{seconds:02d}"


def timestamp_to_seconds(timestamp: str) -> int:
    """
    Convert an "MM:SS" string back to a second count.

    Only a bare "MM:SS" is accepted; anything else, including "H:MM:SS",
    maps to 0 so a bad label still links to the start of the video.
    """
    match = _TIMESTAMP_RE.fullmatch((timestamp or "").strip())
    if not match:
        return 0
    return int(match.group(1)) * 60 + int(match.group(2))


def build_deep_link(video_url: str, timestamp: str) -> str:
    """Append a seek parameter (&t=<seconds>s) to a video URL."""
    seconds = timestamp_to_seconds(timestamp)
    separator = "&" if urlsplit(video_url).query else "?"
    return f"{video_url}{separator}t={seconds}s"
