"""
API service entrypoint.
Runs the FastAPI application via uvicorn with production settings.
PORT overrides the configured port when the platform sets it.
"""
from __future__ import annotations

import os

import uvicorn

from shared.config import get_settings


def main() -> None:
    """Start the API service."""
    settings = get_settings()
    port = int(os.environ.get("PORT", settings.api_port))

    uvicorn.run(
        "api.app:create_app",
        factory=True,
        host=settings.api_host,
        port=port,
        log_level="info",
        access_log=False,  # We handle logging via middleware
        timeout_keep_alive=30,
        limit_concurrency=1000,
    )


if __name__ == "__main__":
    main()
