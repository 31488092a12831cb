import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError

from filevault.core.config import Settings
from filevault.core.errors import Conflict, Forbidden, NotFound, Unauthenticated
from filevault.core.security import hash_password, verify_password
from filevault.services.tokens import InvalidToken, RefreshTokenService, issue_access_token
from filevault.store import IdentityStore

log = logging.getLogger(__name__)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str


class AccountService:
    """Sign-up, sign-in and sign-out workflows."""

    def __init__(self, settings: Settings, store: IdentityStore, refresh_tokens: RefreshTokenService):
        self.settings = settings
        self.store = store
        self.refresh_tokens = refresh_tokens

    def _issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=issue_access_token(user_id, self.settings),
            refresh_token=self.refresh_tokens.issue(user_id),
        )

    def sign_up(self, password: str, email: Optional[str] = None, phone: Optional[str] = None) -> TokenPair:
        for identifier in (email, phone):
            if identifier and self.store.find_user_by_email_or_phone(identifier):
                raise Conflict("username_not_available")

        try:
            user = self.store.create_user(hash_password(password), email=email, phone=phone)
        except IntegrityError as ex:
            # lost a race against a concurrent sign-up for the same identity
            raise Conflict("username_not_available") from ex

        log.info("User registered: %s", user.id)
        return self._issue_pair(user.id)

    def sign_in(self, email_or_phone: str, password: str) -> TokenPair:
        user = self.store.find_user_by_email_or_phone(email_or_phone)
        if not user or not verify_password(user.password_hash, password):
            raise Forbidden("wrong_password_or_user_not_found")

        log.info("User signed in: %s", user.id)
        return self._issue_pair(user.id)

    def refresh_access(self, refresh_token: Optional[str]) -> str:
        if not refresh_token:
            raise Unauthenticated("refresh_token_empty")
        try:
            return self.refresh_tokens.redeem(refresh_token)
        except NotFound as ex:
            raise Unauthenticated("refresh_token_not_found") from ex
        except InvalidToken as ex:
            raise Forbidden("jwt_verification_failed") from ex

    def sign_out(self, refresh_token: Optional[str]) -> None:
        """Invalidate the presented refresh token, if any.

        A token that was presented but has no stored row is rejected so the
        caller can tell a stale session from a fresh logout.
        """
        if refresh_token and not self.refresh_tokens.invalidate(refresh_token):
            raise Forbidden("refresh_token_not_found")

    def user_info(self, user_id: str) -> dict:
        user = self.store.get_user_by_id(user_id)
        if user is None:
            raise NotFound("user_not_found")
        return {"id": user.contact}
