"""Utility helpers for working with media durations and cue timestamps."""

from __future__ import annotations

from typing import Optional, Union


def seconds_to_milliseconds(seconds: Optional[Union[str, int, float]]) -> int:
    """Convert a duration in seconds to whole milliseconds.

    Args:
        seconds: The duration as reported by a probe. Accepts:
            - int or float: seconds.
            - str: a decimal number of seconds (ffprobe reports strings).
            - None: no duration reported.

    Returns:
        The duration in milliseconds, ``0`` when nothing usable was reported.

    Raises:
        ValueError: If the duration is negative.
    """

    if seconds is None:
        return 0

    if isinstance(seconds, str):
        token = seconds.strip()
        if not token or token.upper() == "N/A":
            return 0
        try:
            seconds = float(token)
        except ValueError:
            return 0

    if seconds < 0:
        raise ValueError("Duration cannot be negative.")
    return int(round(float(seconds) * 1000))


def format_vtt_timestamp(milliseconds: int) -> str:
    """Format milliseconds into HH:MM:SS.mmm."""

    if milliseconds < 0:
        raise ValueError("Milliseconds cannot be negative.")
    seconds, millis = divmod(int(milliseconds), 1000)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{millis:03d}"
