"""Bearer access token verification.

Tokens are JWTs signed by the authentication service with its private
key. Only the public half is configured here (base64-encoded PEM), so
this service can verify tokens but never issue them.
"""
from __future__ import annotations

import base64
import binascii
import logging
from functools import lru_cache

import jwt

from image_proxy.config import get_settings
from image_proxy.errors import AuthenticationError
from image_proxy.models import Caller

logger = logging.getLogger(__name__)


class TokenVerifier:
    """Validates ``Authorization`` header values and extracts the caller."""

    def __init__(self, public_key: str, *, algorithm: str = "RS256") -> None:
        self._public_key = public_key
        self._algorithms = [algorithm]

    def verify(self, authorization: str | None) -> Caller:
        if not authorization:
            raise AuthenticationError()

        scheme, _, token = authorization.partition(" ")
        if scheme != "Bearer" or not token.strip():
            logger.debug("Rejected authorization header with scheme %r", scheme)
            raise AuthenticationError()

        try:
            payload = jwt.decode(
                token.strip(),
                self._public_key,
                algorithms=self._algorithms,
                options={"require": ["sub"]},
            )
        except jwt.PyJWTError as exc:
            logger.debug("Access token rejected: %s", exc)
            raise AuthenticationError() from exc

        return Caller(id=str(payload["sub"]), name=payload.get("name"), email=payload.get("email"))


def decode_public_key(encoded: str) -> str:
    """Decode the base64 wrapped PEM from the environment."""

    try:
        # Line-wrapped output of the base64 tool is accepted
        return base64.b64decode("".join(encoded.split()), validate=True).decode("ascii")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise ValueError("ACCESS_TOKEN_PUBLIC_KEY must be a base64-encoded PEM key") from exc


@lru_cache()
def get_token_verifier() -> TokenVerifier:
    settings = get_settings()
    return TokenVerifier(
        decode_public_key(settings.access_token_public_key),
        algorithm=settings.access_token_algorithm,
    )
