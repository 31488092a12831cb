"""Error taxonomy shared by the services and the HTTP layer.

Services raise :class:`ServiceError` subclasses carrying a short, machine
readable ``reason``. Routes run inside :func:`operation`, which tags the error
with the operation name (``signin_failed``, ``create_file_failed``, ...) and
logs it. Anything that is not a :class:`ServiceError` becomes :class:`Internal`
so store and disk details never reach the client.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for failures that map onto an HTTP response."""

    status_code = 500
    default_reason = "internal_error"

    def __init__(self, reason: Optional[str] = None, operation: Optional[str] = None):
        self.reason = reason or self.default_reason
        self.operation = operation
        super().__init__(self.reason)

    @property
    def public_detail(self) -> str:
        return self.reason


class Unauthenticated(ServiceError):
    """No credential, or one too garbled to attempt verification."""

    status_code = 401
    default_reason = "authentication_required"


class Forbidden(ServiceError):
    """A credential was presented but rejected, or the caller does not own the record."""

    status_code = 403
    default_reason = "forbidden"


class NotFound(ServiceError):
    status_code = 404
    default_reason = "not_found"


class Conflict(ServiceError):
    """Identity already taken."""

    status_code = 403
    default_reason = "conflict"


class ValidationFailed(ServiceError):
    status_code = 400
    default_reason = "validation_failed"


class Internal(ServiceError):
    status_code = 500
    default_reason = "internal_error"

    @property
    def public_detail(self) -> str:
        return Internal.default_reason


def error_response(ex: ServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=ex.status_code,
        content={"error": ex.operation or "request_failed", "detail": ex.public_detail},
    )


@contextmanager
def operation(name: str) -> Iterator[None]:
    """Run a request handler body as the operation ``name``."""
    try:
        yield
    except Internal as ex:
        ex.operation = ex.operation or name
        log.error("%s: %s", name, ex.reason, exc_info=ex.__cause__ or ex)
        raise
    except ServiceError as ex:
        ex.operation = ex.operation or name
        log.warning("%s: %s", name, ex.reason)
        raise
    except Exception as ex:
        log.exception("%s: %s", name, ex)
        raise Internal(operation=name) from ex
