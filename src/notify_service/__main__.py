"""Entrypoint: python -m notify_service (HTTP ingest, pull API and push edge)."""
from __future__ import annotations

import uvicorn

from notify_service.config import settings


def main() -> None:
    uvicorn.run(
        "notify_service.app:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()
