"""Root conftest: loads .env.test before any lobby_chat module reads settings."""
from __future__ import annotations

import os
from pathlib import Path

_env_test = Path(__file__).resolve().parent / ".env.test"
if _env_test.exists():
    for line in _env_test.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        os.environ.setdefault(key.strip(), value.strip())

# Settings require these even though unit tests never open a database.
os.environ.setdefault("POSTGRES_USER", "lobby")
os.environ.setdefault("POSTGRES_PASSWORD", "lobby")
os.environ.setdefault("POSTGRES_DB", "lobby_chat_test")
os.environ.setdefault("JWT_SECRET", "lobby-test-secret-0123456789abcdef0123")
