"""Launch the media dropbox FastAPI server."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from media_dropbox.config import DropboxConfig
from media_dropbox.server import create_app


def _load_env_files() -> None:
    """Load environment variables from .env files if present."""

    for filename in (".env.local", ".env", ".env.defaults"):
        env_path = Path(filename)
        if env_path.exists():
            load_dotenv(env_path, override=False)


def main() -> None:
    _load_env_files()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = DropboxConfig.from_env()
    app = create_app(config)
    logging.getLogger("media_dropbox").info("zone dropbox serving on http://%s:%d", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port, reload=False)


if __name__ == "__main__":
    main()
