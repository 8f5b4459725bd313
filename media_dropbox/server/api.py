"""FastAPI application exposing the media dropbox."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import Any, AsyncIterator, Optional

import aiofiles
from fastapi import Body, Depends, FastAPI, File, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from media_dropbox.config import DropboxConfig
from media_dropbox.intake import (
    IntakeError,
    ProbeFn,
    attach_subtitle,
    create_entry,
    ingest_local_file,
)
from media_dropbox.library import LibraryStore, MediaEntry, PersistenceError
from media_dropbox.mutations import PatchValidationError, patch_entry, validate_patch
from media_dropbox.probe import probe_duration
from media_dropbox.search import search_library
from media_dropbox.subtitles import SubtitleConversionError
from media_dropbox.server.auth import AuthenticationError, PasswordAuth


logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


class EntryNotFoundError(LookupError):
    """Raised when a path refers to an unknown media id."""


class UploadTooLargeError(ValueError):
    """Raised when an upload exceeds the configured size limit."""


class CreateEntryRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=128, description="Title to display.")
    url: str = Field(..., min_length=1, description="Location of the playable media.")
    password: Optional[str] = Field(None, description="Shared password, unless sent as a Bearer header.")


def present(entry: MediaEntry) -> dict:
    """Serialize an entry for responses, adding ``src``."""
    payload = entry.to_dict()
    payload["src"] = entry.url
    return payload


def _ensure_directories(config: DropboxConfig) -> None:
    for path in (config.data_path.parent, config.media_path):
        path.mkdir(parents=True, exist_ok=True)


def create_app(config: Optional[DropboxConfig] = None, *, probe: Optional[ProbeFn] = None) -> FastAPI:
    """Create and configure the FastAPI application."""

    config = config or DropboxConfig.from_env()
    _ensure_directories(config)
    library = LibraryStore.from_path(config.data_path)
    require_auth = PasswordAuth(config.password)
    media_root = config.media_path

    def default_probe(path: Path) -> float:
        return probe_duration(path, ffprobe_path=config.ffprobe_path, timeout=config.probe_timeout)

    probe_media = probe or default_probe

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Library loaded with %d entries from %s", len(library), config.data_path)
        yield
        try:
            library.save()
        except PersistenceError as exc:
            logger.error("Failed to save library on shutdown", exc_info=exc)

    app = FastAPI(title="Media Dropbox", version="0.1.0", lifespan=lifespan)
    app.state.library = library
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Error mapping ---------------------------------------------------
    @app.exception_handler(AuthenticationError)
    async def _unauthorized(request: Request, exc: AuthenticationError) -> JSONResponse:
        return JSONResponse(status_code=401, content={"title": "Invalid password."})

    @app.exception_handler(EntryNotFoundError)
    async def _not_found(request: Request, exc: EntryNotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"title": "Entry does not exist."})

    @app.exception_handler(RequestValidationError)
    async def _invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"title": "Invalid request.", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(PatchValidationError)
    async def _invalid_patch(request: Request, exc: PatchValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"title": "Invalid request.", "details": exc.errors})

    @app.exception_handler(UploadTooLargeError)
    async def _too_large(request: Request, exc: UploadTooLargeError) -> JSONResponse:
        return JSONResponse(status_code=413, content={"title": "File too large."})

    @app.exception_handler(IntakeError)
    @app.exception_handler(SubtitleConversionError)
    @app.exception_handler(PersistenceError)
    async def _pipeline_failed(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=500, content={"title": "Processing failed.", "detail": str(exc)})

    @app.middleware("http")
    async def enforce_upload_limit(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > config.upload_limit_bytes:
            logger.warning("Rejected %s %s: %s bytes over limit", request.method, request.url.path, length)
            return JSONResponse(status_code=413, content={"title": "File too large."})
        return await call_next(request)

    # Dependencies ----------------------------------------------------
    def get_library() -> LibraryStore:
        return library

    def get_entry(media: str, lib: LibraryStore = Depends(get_library)) -> MediaEntry:
        entry = lib.get(media)
        if entry is None:
            raise EntryNotFoundError(media)
        return entry

    async def _stage_upload(upload: UploadFile) -> Path:
        """Stream an upload to a temporary file, enforcing the size limit."""

        suffix = Path(upload.filename or "").suffix
        handle, name = tempfile.mkstemp(prefix="dropbox-", suffix=suffix)
        os.close(handle)
        staged = Path(name)
        written = 0
        try:
            async with aiofiles.open(staged, "wb") as out_file:
                while chunk := await upload.read(_CHUNK_SIZE):
                    written += len(chunk)
                    if written > config.upload_limit_bytes:
                        raise UploadTooLargeError(upload.filename)
                    await out_file.write(chunk)
        except BaseException:
            with suppress(FileNotFoundError, PermissionError):
                staged.unlink()
            raise
        return staged

    def _remove_managed_files(entry: MediaEntry) -> None:
        names = [entry.subtitle]
        prefix = f"{config.media_url_prefix}/"
        if entry.url.startswith(prefix):
            names.append(entry.url[len(prefix):])
        for name in names:
            # Only files named after this entry belong to it; URLs may point at other entries.
            if not name or Path(name).name != name or Path(name).stem != entry.media_id:
                continue
            with suppress(FileNotFoundError, IsADirectoryError, PermissionError):
                (media_root / name).unlink()

    # Routes ---------------------------------------------------------
    @app.get("/dropbox")
    async def list_entries(
        tag: Optional[str] = Query(None),
        q: Optional[str] = Query(None),
        lib: LibraryStore = Depends(get_library),
    ) -> list[dict]:
        return [present(entry) for entry in search_library(lib.values(), tag=tag, q=q)]

    @app.get("/dropbox-limit")
    async def upload_limit() -> dict:
        return {"limit": config.upload_limit_bytes}

    @app.post("/dropbox/auth", dependencies=[Depends(require_auth)])
    async def check_auth() -> dict:
        logger.info("Logged in with password")
        return {"authorized": True}

    @app.post("/dropbox", dependencies=[Depends(require_auth)])
    async def create(payload: CreateEntryRequest, lib: LibraryStore = Depends(get_library)) -> dict:
        return present(create_entry(lib, title=payload.title, url=payload.url))

    @app.post("/dropbox/upload", dependencies=[Depends(require_auth)])
    async def upload_media(
        media: UploadFile = File(..., description="Audio or video file to add."),
        lib: LibraryStore = Depends(get_library),
    ) -> dict:
        staged = await _stage_upload(media)
        loop = asyncio.get_running_loop()
        try:
            entry = await loop.run_in_executor(
                None,
                lambda: ingest_local_file(
                    lib,
                    staged,
                    media_root=media_root,
                    probe=probe_media,
                    url_prefix=config.media_url_prefix,
                    original_name=Path(media.filename or staged.name).name,
                ),
            )
        finally:
            with suppress(FileNotFoundError, PermissionError):
                staged.unlink()
        return present(entry)

    @app.get("/dropbox/{media}")
    async def get_media(entry: MediaEntry = Depends(get_entry)) -> dict:
        return present(entry)

    @app.get("/dropbox/{media}/status")
    async def media_status(entry: MediaEntry = Depends(get_entry)) -> str:
        return "available"

    @app.get("/dropbox/{media}/progress")
    async def media_progress(entry: MediaEntry = Depends(get_entry)) -> int:
        return 1

    @app.post("/dropbox/{media}/request", status_code=202)
    async def request_media(entry: MediaEntry = Depends(get_entry)) -> Response:
        return Response(status_code=202)

    @app.put("/dropbox/{media}/subtitles")
    async def upload_subtitles(
        entry: MediaEntry = Depends(get_entry),
        _: None = Depends(require_auth),
        subtitles: UploadFile = File(..., description="SRT or WebVTT subtitle track."),
        lib: LibraryStore = Depends(get_library),
    ) -> dict:
        staged = await _stage_upload(subtitles)
        loop = asyncio.get_running_loop()
        try:
            updated = await loop.run_in_executor(
                None,
                lambda: attach_subtitle(
                    lib,
                    entry.media_id,
                    staged,
                    media_root=media_root,
                    original_name=subtitles.filename or staged.name,
                ),
            )
        finally:
            with suppress(FileNotFoundError, PermissionError):
                staged.unlink()
        if updated is None:
            raise EntryNotFoundError(entry.media_id)
        return present(updated)

    @app.patch("/dropbox/{media}")
    async def update_media(
        entry: MediaEntry = Depends(get_entry),
        _: None = Depends(require_auth),
        payload: Any = Body(None),
        lib: LibraryStore = Depends(get_library),
    ) -> dict:
        patch = validate_patch(payload)
        loop = asyncio.get_running_loop()
        updated = await loop.run_in_executor(None, lambda: patch_entry(lib, entry.media_id, patch))
        if updated is None:
            raise EntryNotFoundError(entry.media_id)
        return present(updated)

    @app.delete("/dropbox/{media}")
    async def delete_media(
        entry: MediaEntry = Depends(get_entry),
        _: None = Depends(require_auth),
        tag: Optional[str] = Query(None),
        q: Optional[str] = Query(None),
        lib: LibraryStore = Depends(get_library),
    ) -> list[dict]:
        if lib.delete(entry.media_id):
            _remove_managed_files(entry)
            logger.info("Deleted entry %s", entry.media_id)
        return [present(item) for item in search_library(lib.values(), tag=tag, q=q)]

    app.mount(config.media_url_prefix, StaticFiles(directory=media_root), name="media")
    if config.public_path.exists():
        app.mount("/", StaticFiles(directory=config.public_path, html=True), name="public")

    return app
