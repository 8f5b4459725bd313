"""Minimal ffprobe wrapper used to read media durations on intake."""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Optional


class ProbeError(RuntimeError):
    """Raised when ffprobe is unavailable or cannot read a media file."""


def _safe_float(value: object) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def probe_duration(
    path: str | Path,
    *,
    ffprobe_path: Optional[str] = None,
    timeout: float = 30.0,
) -> float:
    """Return the playback duration of *path* in seconds.

    The first stream's duration is preferred, then the container's; ``0.0``
    is returned when ffprobe reports neither.

    Raises:
        ProbeError: If ffprobe is missing, fails, times out or emits bad JSON.
    """

    executable = ffprobe_path or shutil.which("ffprobe")
    if not executable:
        raise ProbeError("ffprobe not found")

    cmd = [
        executable,
        "-v",
        "error",
        "-print_format",
        "json",
        "-show_streams",
        "-show_format",
        str(path),
    ]
    try:
        proc = subprocess.run(
            cmd,
            check=False,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=max(1.0, float(timeout)),
        )
    except subprocess.TimeoutExpired as exc:
        raise ProbeError("ffprobe timeout") from exc
    except OSError as exc:
        raise ProbeError(f"ffprobe failed: {exc}") from exc

    if proc.returncode != 0:
        raise ProbeError(proc.stderr.strip() or proc.stdout.strip() or "ffprobe error")

    try:
        parsed = json.loads(proc.stdout or "{}")
    except json.JSONDecodeError as exc:
        raise ProbeError(f"invalid ffprobe output: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ProbeError("invalid ffprobe output: expected an object")

    streams = parsed.get("streams") if isinstance(parsed.get("streams"), list) else []
    if streams and isinstance(streams[0], dict):
        duration = _safe_float(streams[0].get("duration"))
        if duration is not None:
            return duration

    format_section = parsed.get("format") if isinstance(parsed.get("format"), dict) else {}
    duration = _safe_float(format_section.get("duration"))
    return duration if duration is not None else 0.0
