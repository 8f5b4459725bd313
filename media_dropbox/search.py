"""Tag and title filtering over library snapshots."""

from __future__ import annotations

from typing import Iterable, List, Optional

from .library import MediaEntry


def search_library(
    entries: Iterable[MediaEntry],
    *,
    tag: Optional[str] = None,
    q: Optional[str] = None,
) -> List[MediaEntry]:
    """Filter entries, keeping their original order.

    Args:
        entries: Snapshot of library entries in store order.
        tag: Keep only entries whose tag set contains this tag exactly
            (compared lowercased).
        q: Keep only entries whose title contains this text (case-insensitive).

    Returns:
        The matching entries. Both filters combine; neither returns everything.
    """

    results = list(entries)

    if tag:
        wanted = tag.lower()
        results = [entry for entry in results if wanted in entry.tags]

    if q:
        needle = q.lower()
        results = [entry for entry in results if needle in entry.title.lower()]

    return results
