"""Shared fixtures for the dropbox tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from media_dropbox.config import DropboxConfig
from media_dropbox.library import LibraryStore, MediaEntry
from media_dropbox.server import create_app


PASSWORD = "hunter2"

SAMPLE_SRT = (
    "1\n"
    "00:00:01,000 --> 00:00:02,500\n"
    "Hello there\n"
    "\n"
    "2\n"
    "00:00:03,000 --> 00:00:04,000\n"
    "General Kenobi\n"
)


@pytest.fixture
def config(tmp_path: Path) -> DropboxConfig:
    return DropboxConfig(
        password=PASSWORD,
        data_path=tmp_path / "data" / "library.json",
        media_path=tmp_path / "media",
        public_path=tmp_path / "public",
        upload_limit_mb=1,
    )


@pytest.fixture
def store(tmp_path: Path) -> LibraryStore:
    return LibraryStore.from_path(tmp_path / "library.json")


@pytest.fixture
def client(config: DropboxConfig) -> TestClient:
    app = create_app(config, probe=lambda path: 12.5)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict:
    return {"Authorization": f"Bearer {PASSWORD}"}


def make_entry(media_id: str, title: str, tags: list[str] | None = None) -> MediaEntry:
    return MediaEntry(media_id=media_id, title=title, url=f"http://x/{media_id}.mp4", tags=list(tags or []))
