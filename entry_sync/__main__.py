"""
Run the entry sync API with uvicorn: `python -m entry_sync`.
"""

from __future__ import annotations

import uvicorn

from entry_sync.config import get_settings


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "entry_sync.app:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
