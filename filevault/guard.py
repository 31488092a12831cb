import logging
from typing import Optional

from fastapi import Header, Request

from filevault.core.errors import Forbidden, Unauthenticated, operation
from filevault.services.tokens import InvalidToken, verify_access_token

log = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AuthenticationGuard:
    """Dependency gating protected routes on a bearer access token.

    A missing or malformed ``Authorization`` header is ``Unauthenticated``
    (401); a token that fails verification is ``Forbidden`` (403). On success
    the user id is put on ``request.state.user_id`` and returned.
    """

    def __call__(self, request: Request, authorization: Optional[str] = Header(None)) -> str:
        with operation("authentication_failed"):
            if not authorization or not authorization.startswith(BEARER_PREFIX):
                raise Unauthenticated("authorization_header_empty")

            token = authorization[len(BEARER_PREFIX):].strip()
            if not token:
                raise Unauthenticated("token_empty")

            try:
                user_id = verify_access_token(token, request.app.state.settings)
            except InvalidToken as ex:
                log.debug("Access token rejected: %s", ex)
                raise Forbidden("jwt_verification_failed") from ex

        request.state.user_id = user_id
        return user_id


require_user = AuthenticationGuard()
