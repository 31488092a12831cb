"""Access and refresh tokens.

Access tokens are short lived and verified without touching the store, so
they cannot be revoked before they expire. Refresh tokens carry no expiry;
one is valid exactly as long as its ``refresh_tokens`` row exists.
"""

import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

import jwt

from filevault.core.config import Settings
from filevault.core.errors import NotFound
from filevault.store import IdentityStore

log = logging.getLogger(__name__)

ALGORITHM = "HS256"


class InvalidToken(Exception):
    """Token failed signature, expiry or shape checks."""


def issue_access_token(user_id: str, settings: Settings, now: Optional[datetime] = None) -> str:
    issued_at = now or datetime.now(timezone.utc)
    payload = {
        "user_id": user_id,
        "iat": issued_at,
        "exp": issued_at + settings.access_token_expiry,
    }
    return jwt.encode(payload, settings.access_token_secret.get_secret_value(), algorithm=ALGORITHM)


def verify_access_token(token: str, settings: Settings) -> str:
    """Return the user id encoded in ``token``."""
    return _decode_user_id(
        token,
        settings.access_token_secret.get_secret_value(),
        options={"require": ["exp", "user_id"]},
    )


def _decode_user_id(token: str, secret: str, options: dict) -> str:
    try:
        data = jwt.decode(token, secret, algorithms=[ALGORITHM], options=options)
    except jwt.PyJWTError as ex:
        raise InvalidToken(str(ex)) from ex
    user_id = data.get("user_id")
    if not isinstance(user_id, str) or not user_id:
        raise InvalidToken("user_id claim is not a string")
    return user_id


class RefreshTokenService:
    """Issues, redeems and invalidates store-backed refresh tokens."""

    def __init__(self, settings: Settings, store: IdentityStore):
        self.settings = settings
        self.store = store

    @property
    def _secret(self) -> str:
        return self.settings.refresh_token_secret.get_secret_value()

    def issue(self, user_id: str) -> str:
        payload = {
            "user_id": user_id,
            # keeps token values unique when one user signs in twice in a second
            "jti": secrets.token_hex(16),
            "iat": datetime.now(timezone.utc),
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        self.store.create_refresh_token(user_id, token)
        log.debug("Issued refresh token for user %s", user_id)
        return token

    def redeem(self, token: str) -> str:
        """Mint a new access token from a live refresh token.

        Raises ``NotFound`` when no row holds ``token`` and ``InvalidToken``
        when the stored value does not verify. The refresh token stays valid.
        """
        row = self.store.find_refresh_token_by_value(token)
        if row is None:
            raise NotFound("refresh_token_not_found")

        user_id = _decode_user_id(token, self._secret, options={"require": ["user_id"]})
        if user_id != row.user_id:
            raise InvalidToken("refresh token owner mismatch")

        return issue_access_token(user_id, self.settings)

    def invalidate(self, token: str) -> bool:
        return self.store.delete_refresh_token_by_value(token)
