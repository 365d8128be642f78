from __future__ import annotations

import logging

import jwt
from jwt import PyJWKClient

from lobby_chat.application.exceptions import InvalidCredentialError
from lobby_chat.infrastructure.auth.hs256_verifier import account_id_from_claims

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str) -> None:
        self._jwks_url = jwks_url
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> int:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
            )
        except jwt.PyJWKClientError:
            logger.warning("JWKS lookup failed for %s", self._jwks_url, exc_info=True)
            raise InvalidCredentialError("Signing key unavailable")
        except jwt.PyJWTError as exc:
            raise InvalidCredentialError(str(exc)) from exc
        return account_id_from_claims(payload)
