"""Manage the media library and mirror it to a JSON document."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple


logger = logging.getLogger(__name__)


class PersistenceError(RuntimeError):
    """Raised when the library document cannot be written."""


@dataclass
class MediaEntry:
    media_id: str
    title: str
    url: str
    duration: Optional[int] = None
    tags: List[str] = field(default_factory=list)
    subtitle: Optional[str] = None

    def to_dict(self) -> Dict:
        data: Dict = {
            "mediaId": self.media_id,
            "title": self.title,
            "url": self.url,
        }
        if self.duration is not None:
            data["duration"] = self.duration
        data["tags"] = list(self.tags)
        if self.subtitle:
            data["subtitle"] = self.subtitle
        return data

    @classmethod
    def from_dict(cls, data: Dict) -> "MediaEntry":
        duration = data.get("duration")
        return cls(
            media_id=str(data["mediaId"]),
            title=str(data.get("title") or ""),
            url=str(data.get("url") or ""),
            duration=int(duration) if duration is not None else None,
            tags=[str(tag) for tag in data.get("tags") or []],
            subtitle=data.get("subtitle") or None,
        )


class JsonLibraryFile:
    """Persistence adapter holding every entry in a single JSON document.

    The layout is ``{"entries": [[media_id, entry], ...]}`` and the whole
    document is rewritten on every save.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> List[Tuple[str, MediaEntry]]:
        """Return stored ``(media_id, entry)`` pairs, or nothing if unreadable."""

        if not self.path.exists():
            return []
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Starting with an empty library; could not read %s: %s", self.path, exc)
            return []

        raw_entries = data.get("entries") if isinstance(data, dict) else None
        if not isinstance(raw_entries, list):
            logger.warning("Starting with an empty library; %s has no entry list", self.path)
            return []

        pairs: List[Tuple[str, MediaEntry]] = []
        for item in raw_entries:
            try:
                media_id, payload = item
                pairs.append((str(media_id), MediaEntry.from_dict(payload)))
            except (TypeError, ValueError, KeyError) as exc:
                logger.warning("Skipping malformed library entry %r: %s", item, exc)
        return pairs

    def save(self, entries: List[Tuple[str, MediaEntry]]) -> None:
        """Overwrite the document with the full entry list."""

        document = {"entries": [[media_id, entry.to_dict()] for media_id, entry in entries]}
        temp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_path = Path(handle.name)
                json.dump(document, handle, indent=2)
            os.replace(temp_path, self.path)
        except OSError as exc:
            if temp_path:
                with suppress(FileNotFoundError, PermissionError):
                    temp_path.unlink()
            raise PersistenceError(f"Failed to write library to {self.path}: {exc}") from exc


class LibraryStore:
    """In-memory library that mirrors every mutation to its persistence adapter."""

    def __init__(self, persistence: JsonLibraryFile) -> None:
        self.persistence = persistence
        self._lock = threading.RLock()
        self._entries: Dict[str, MediaEntry] = dict(persistence.load())

    @classmethod
    def from_path(cls, path: str | Path) -> "LibraryStore":
        return cls(JsonLibraryFile(path))

    def __contains__(self, media_id: object) -> bool:
        return media_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @contextmanager
    def mutation(self) -> Iterator["LibraryStore"]:
        """Hold the store lock across a read-modify-write sequence."""
        with self._lock:
            yield self

    # Public API -------------------------------------------------------
    def get(self, media_id: str) -> Optional[MediaEntry]:
        return self._entries.get(media_id)

    def values(self) -> List[MediaEntry]:
        with self._lock:
            return list(self._entries.values())

    def set(self, media_id: str, entry: MediaEntry) -> None:
        """Store ``entry`` and persist; the change is undone if the save fails."""
        with self._lock:
            previous = self._entries.get(media_id)
            self._entries[media_id] = entry
            try:
                self.save()
            except PersistenceError:
                if previous is None:
                    del self._entries[media_id]
                else:
                    self._entries[media_id] = previous
                raise

    def delete(self, media_id: str) -> bool:
        with self._lock:
            if media_id not in self._entries:
                return False
            snapshot = dict(self._entries)
            del self._entries[media_id]
            try:
                self.save()
            except PersistenceError:
                self._entries = snapshot
                raise
            return True

    def save(self) -> None:
        with self._lock:
            self.persistence.save(list(self._entries.items()))
