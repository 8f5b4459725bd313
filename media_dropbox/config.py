"""Runtime configuration for the dropbox service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class DropboxConfig:
    """Settings resolved from the environment at startup."""

    host: str = "127.0.0.1"
    port: int = 4003
    password: str = ""
    data_path: Path = Path("data/library.json")
    media_path: Path = Path("media")
    public_path: Path = Path("public")
    upload_limit_mb: float = 100
    media_url_prefix: str = "/media"
    ffprobe_path: Optional[str] = None
    probe_timeout: float = 30.0

    @property
    def upload_limit_bytes(self) -> int:
        return int(self.upload_limit_mb * 1024 * 1024)

    @classmethod
    def from_env(cls) -> "DropboxConfig":
        defaults = cls()
        return cls(
            host=os.getenv("HOST", defaults.host),
            port=int(os.getenv("PORT", str(defaults.port))),
            password=os.getenv("PASSWORD", defaults.password),
            data_path=Path(os.getenv("DATA_PATH", str(defaults.data_path))),
            media_path=Path(os.getenv("MEDIA_PATH", str(defaults.media_path))),
            public_path=Path(os.getenv("PUBLIC_PATH", str(defaults.public_path))),
            upload_limit_mb=float(os.getenv("UPLOAD_LIMIT_MB", str(defaults.upload_limit_mb))),
            media_url_prefix=os.getenv("MEDIA_URL_PREFIX", defaults.media_url_prefix).rstrip("/"),
            ffprobe_path=os.getenv("FFPROBE_PATH") or None,
            probe_timeout=float(os.getenv("PROBE_TIMEOUT", str(defaults.probe_timeout))),
        )
