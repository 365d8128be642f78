from __future__ import annotations

import jwt

from lobby_chat.application.exceptions import InvalidCredentialError


def account_id_from_claims(payload: dict) -> int:
    """Read the account id from `sub`, falling back to the legacy `id` claim."""
    raw = payload.get("sub", payload.get("id"))
    try:
        return int(raw)
    except (TypeError, ValueError) as exc:
        raise InvalidCredentialError("Token has no usable subject") from exc


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> int:
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except jwt.PyJWTError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        return account_id_from_claims(payload)
