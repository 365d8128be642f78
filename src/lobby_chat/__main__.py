"""Entrypoint: python -m lobby_chat"""
from __future__ import annotations

import uvicorn

from lobby_chat.config import settings
from lobby_chat.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "lobby_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
