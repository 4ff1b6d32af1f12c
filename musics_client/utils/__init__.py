"""
Utility functions for musics-client.

This module provides small helpers used across the package:
    - Time formatting for the player (m:ss)
    - Numeric clamping
    - Filenames for downloaded audio

Usage:
    from musics_client.utils import format_time, clamp, audio_filename
"""

import math
import re
from pathlib import Path

from musics_client.core.logger import get_logger

logger = get_logger(__name__)


# Characters invalid in filenames on at least one major platform
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def format_time(seconds: float | None) -> str:
    """
    Format a playback position as minutes and zero-padded seconds.

    Args:
        seconds: Position in seconds. None, NaN and negative values
                 render as "0:00".

    Returns:
        String like "3:05". Minutes are not wrapped into hours.

    Examples:
        format_time(185)    # "3:05"
        format_time(59.9)   # "0:59"
        format_time(None)   # "0:00"
    """
    if seconds is None or math.isnan(seconds) or seconds < 0:
        return "0:00"

    total = int(seconds)
    minutes = total // 60
    secs = total % 60
    return f"{minutes}:{secs:02d}"


def clamp(value: float, low: float, high: float) -> float:
    """Return value limited to the closed range [low, high]."""
    return max(low, min(high, value))


def sanitize_filename(name: str) -> str:
    """
    Sanitize a string for use as a filename.

    Replaces path separators and characters invalid on Windows with
    underscores, collapses whitespace and trims the result.

    Examples:
        sanitize_filename("AC/DC")          # "AC_DC"
        sanitize_filename("What?  Now")     # "What_ Now"
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("_", name)
    cleaned = re.sub(r"\s+", " ", cleaned).strip(" .")
    return cleaned or "untitled"


def audio_filename(title: str, artist: str, url: str | None = None) -> str:
    """
    Build a filename for a downloaded track: {title}-{artist}.{ext}.

    The extension is taken from the audio URL path when it has one,
    otherwise "mp3".

    Example:
        audio_filename("Hello: World", "AC/DC", "https://x/a.m4a")
        # "Hello_ World-AC_DC.m4a"
    """
    extension = "mp3"
    if url:
        suffix = Path(url.split("?", 1)[0]).suffix.lstrip(".")
        if suffix.isalnum() and len(suffix) <= 5:
            extension = suffix.lower()

    return f"{sanitize_filename(title)}-{sanitize_filename(artist)}.{extension}"
