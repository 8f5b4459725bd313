"""Tests for media_dropbox.time_utils."""

from __future__ import annotations

import pytest

from media_dropbox.time_utils import format_vtt_timestamp, seconds_to_milliseconds


def test_seconds_to_milliseconds_handles_probe_values() -> None:
    assert seconds_to_milliseconds(12.5) == 12500
    assert seconds_to_milliseconds("3.0015") == 3002
    assert seconds_to_milliseconds(7) == 7000


def test_seconds_to_milliseconds_defaults_to_zero() -> None:
    assert seconds_to_milliseconds(None) == 0
    assert seconds_to_milliseconds("") == 0
    assert seconds_to_milliseconds("N/A") == 0


def test_seconds_to_milliseconds_rejects_negative() -> None:
    with pytest.raises(ValueError):
        seconds_to_milliseconds(-1)


def test_format_vtt_timestamp() -> None:
    assert format_vtt_timestamp(0) == "00:00:00.000"
    assert format_vtt_timestamp(3_723_045) == "01:02:03.045"
