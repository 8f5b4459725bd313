"""Subtitle conversion helpers."""

from __future__ import annotations

import logging
from contextlib import suppress
from pathlib import Path

import pysrt

from .time_utils import format_vtt_timestamp


logger = logging.getLogger(__name__)

TARGET_EXTENSION = ".vtt"


class SubtitleConversionError(RuntimeError):
    """Raised when subtitles cannot be converted to WebVTT."""


def srt_to_vtt(text: str) -> str:
    """Convert SubRip text into a WebVTT document.

    Args:
        text: Contents of an SRT file.

    Returns:
        The WebVTT document, header included.

    Raises:
        SubtitleConversionError: If the text is malformed or holds no cues.
    """

    try:
        subtitles = pysrt.from_string(text, error_handling=pysrt.SubRipFile.ERROR_RAISE)
    except pysrt.Error as exc:
        raise SubtitleConversionError(f"Failed to parse subtitles: {exc}") from exc

    if not len(subtitles):
        raise SubtitleConversionError("No subtitle cues found.")

    blocks = ["WEBVTT"]
    for item in subtitles:
        start = format_vtt_timestamp(item.start.ordinal)
        end = format_vtt_timestamp(item.end.ordinal)
        blocks.append(f"{start} --> {end}\n{item.text}")
    return "\n\n".join(blocks) + "\n"


def convert_subtitle_file(source: str | Path, destination: str | Path) -> Path:
    """Convert the subtitle file at *source* and write WebVTT to *destination*.

    Nothing is left at *destination* when conversion fails.
    """

    source = Path(source)
    destination = Path(destination)
    try:
        text = source.read_bytes().decode("utf-8-sig", errors="replace")
    except OSError as exc:
        raise SubtitleConversionError(f"Failed to read subtitles: {exc}") from exc

    document = srt_to_vtt(text)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(document, encoding="utf-8")
    except OSError as exc:
        with suppress(FileNotFoundError, PermissionError):
            destination.unlink()
        raise SubtitleConversionError(f"Failed to write subtitles: {exc}") from exc

    logger.debug("Converted %s to %s", source, destination)
    return destination
