"""Register new media in the library and attach subtitle tracks."""

from __future__ import annotations

import logging
import shutil
import uuid
from contextlib import suppress
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import unquote

from .library import LibraryStore, MediaEntry, PersistenceError
from .mutations import TITLE_MAX_LENGTH
from .probe import ProbeError
from .subtitles import TARGET_EXTENSION, SubtitleConversionError, convert_subtitle_file
from .time_utils import seconds_to_milliseconds


logger = logging.getLogger(__name__)

ProbeFn = Callable[[Path], Optional[float]]


class IntakeError(RuntimeError):
    """Raised when a media file cannot be moved or probed during intake."""


def generate_media_id(store: LibraryStore) -> str:
    """Return an identifier that is not in use by the library."""
    while True:
        media_id = uuid.uuid4().hex
        if media_id not in store:
            return media_id


def create_entry(store: LibraryStore, *, title: str, url: str) -> MediaEntry:
    """Register externally hosted media; its duration is not probed."""

    media_id = generate_media_id(store)
    entry = MediaEntry(media_id=media_id, title=title, url=url, tags=[])
    store.set(media_id, entry)
    logger.info("Created entry %s for %s", media_id, url)
    return entry


def _discard(path: Path) -> None:
    with suppress(FileNotFoundError, IsADirectoryError, PermissionError):
        path.unlink()


def ingest_local_file(
    store: LibraryStore,
    source: str | Path,
    *,
    media_root: Path,
    probe: ProbeFn,
    url_prefix: str = "/media",
    original_name: Optional[str] = None,
) -> MediaEntry:
    """Move a media file into the media root and add it to the library.

    Args:
        store: Library receiving the new entry.
        source: Path of the uploaded file.
        media_root: Directory holding managed media.
        probe: Callable returning the file's duration in seconds.
        url_prefix: Public URL prefix under which the media root is served.
        original_name: Client-side filename when ``source`` is a staging path.
            The title and extension come from it. It is URL-decoded and the
            title is cut to the maximum title length.

    Returns:
        The stored entry.

    Raises:
        IntakeError: If the move or the probe fails. A file that was already
            moved is removed again so no orphan remains.
    """

    source = Path(source)
    name = Path(Path(unquote(original_name)).name) if original_name else Path(source.name)
    media_id = generate_media_id(store)
    filename = f"{media_id}{name.suffix}"
    destination = media_root / filename

    try:
        media_root.mkdir(parents=True, exist_ok=True)
        shutil.move(str(source), str(destination))
    except OSError as exc:
        logger.error("Failed to move %s into the media root", source, exc_info=exc)
        raise IntakeError(f"Failed to store media file: {exc}") from exc

    try:
        duration = seconds_to_milliseconds(probe(destination))
    except (ProbeError, ValueError) as exc:
        logger.error("Failed to probe %s", destination, exc_info=exc)
        _discard(destination)
        raise IntakeError(f"Failed to read media duration: {exc}") from exc

    entry = MediaEntry(
        media_id=media_id,
        title=name.stem[:TITLE_MAX_LENGTH] or media_id,
        url=f"{url_prefix}/{filename}",
        duration=duration,
        tags=[],
    )
    try:
        store.set(media_id, entry)
    except PersistenceError:
        _discard(destination)
        raise

    logger.info("Ingested %s as %s (%d ms)", name.name, media_id, duration)
    return entry


def attach_subtitle(
    store: LibraryStore,
    media_id: str,
    source: str | Path,
    *,
    media_root: Path,
    original_name: Optional[str] = None,
) -> Optional[MediaEntry]:
    """Store a subtitle track as ``<media_id>.vtt`` and link it to the entry.

    WebVTT uploads are moved as-is; anything else is converted first.
    Returns None when the entry does not exist.

    Raises:
        IntakeError: If a WebVTT upload cannot be moved.
        SubtitleConversionError: If conversion fails. The entry is left unchanged.
    """

    source = Path(source)
    name = original_name or source.name

    with store.mutation():
        entry = store.get(media_id)
        if entry is None:
            return None

        filename = f"{entry.media_id}{TARGET_EXTENSION}"
        destination = media_root / filename

        if name.lower().endswith(TARGET_EXTENSION):
            try:
                media_root.mkdir(parents=True, exist_ok=True)
                shutil.move(str(source), str(destination))
            except OSError as exc:
                logger.error("Failed to store subtitles for %s", media_id, exc_info=exc)
                raise IntakeError(f"Failed to store subtitles: {exc}") from exc
        else:
            try:
                convert_subtitle_file(source, destination)
            except SubtitleConversionError as exc:
                logger.error("Subtitle conversion failed for %s", media_id, exc_info=exc)
                raise

        updated = replace(entry, subtitle=filename)
        try:
            store.set(media_id, updated)
        except PersistenceError:
            if entry.subtitle != filename:
                _discard(destination)
            raise

    logger.info("Attached subtitles %s to %s", filename, media_id)
    return updated
