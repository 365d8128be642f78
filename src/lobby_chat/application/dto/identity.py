from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Identity:
    """Verified account identity, copied into the session on admission."""

    account_id: int
    display_name: str
    is_admin: bool = False
