"""Validate and apply title/tag edits to library entries."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Annotated, Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, ValidationError

from .library import LibraryStore, MediaEntry


logger = logging.getLogger(__name__)

TITLE_MAX_LENGTH = 128
TAG_MAX_LENGTH = 32

Tag = Annotated[str, StringConstraints(to_lower=True, min_length=1, max_length=TAG_MAX_LENGTH)]


class PatchValidationError(ValueError):
    """Raised when an edit request violates the title or tag constraints."""

    def __init__(self, errors: List[dict]) -> None:
        self.errors = errors
        summary = "; ".join(
            f"{'.'.join(str(part) for part in error.get('loc', ())) or 'body'}: {error.get('msg')}"
            for error in errors
        )
        super().__init__(summary or "Invalid patch.")


class EntryPatch(BaseModel):
    """Partial update accepted by ``PATCH /dropbox/{media}``."""

    model_config = ConfigDict(extra="forbid")

    setTitle: Optional[str] = Field(
        None,
        min_length=1,
        max_length=TITLE_MAX_LENGTH,
        description="Replacement display title.",
    )
    addTags: List[Tag] = Field(default_factory=list, description="Tags to add (lowercased).")
    delTags: List[Tag] = Field(default_factory=list, description="Tags to remove (lowercased).")
    # Credentials may travel in the body; they are checked by the auth layer.
    password: Optional[str] = Field(None, exclude=True)


def validate_patch(payload: Any) -> EntryPatch:
    """Parse a raw request body into an :class:`EntryPatch`.

    Raises:
        PatchValidationError: Listing every violated constraint.
    """

    try:
        return EntryPatch.model_validate({} if payload is None else payload)
    except ValidationError as exc:
        errors = [
            {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
            for error in exc.errors()
        ]
        raise PatchValidationError(errors) from exc


def apply_patch(entry: MediaEntry, patch: EntryPatch) -> MediaEntry:
    """Return a copy of ``entry`` with the patch applied.

    Tags become ``(current | addTags) - delTags`` with duplicates dropped and
    existing order kept.
    """

    tags: List[str] = []
    for tag in [*entry.tags, *patch.addTags]:
        if tag not in tags:
            tags.append(tag)
    removed = set(patch.delTags)
    tags = [tag for tag in tags if tag not in removed]

    title = patch.setTitle if patch.setTitle else entry.title
    return replace(entry, title=title, tags=tags)


def patch_entry(store: LibraryStore, media_id: str, patch: EntryPatch) -> Optional[MediaEntry]:
    """Apply ``patch`` to a stored entry and persist, or return None if unknown."""

    with store.mutation():
        entry = store.get(media_id)
        if entry is None:
            return None
        updated = apply_patch(entry, patch)
        store.set(media_id, updated)
    logger.info("Updated entry %s (title=%r, tags=%s)", media_id, updated.title, updated.tags)
    return updated
