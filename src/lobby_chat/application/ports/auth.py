from __future__ import annotations

from typing import Protocol

from lobby_chat.application.dto.identity import Identity


class TokenVerifier(Protocol):
    """Validate a bearer token and return the account id it was issued for."""

    async def verify(self, token: str) -> int: ...


class IdentityProvider(Protocol):
    async def verify(self, credential: str) -> Identity:
        """Raise InvalidCredentialError when the credential is not acceptable."""
        ...
