from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from conftest import bearer
from filevault.core.errors import ServiceError, error_response
from filevault.guard import require_user
from filevault.services.tokens import issue_access_token


@pytest.fixture
def guarded(settings):
    """Returns a client for a bare app with one protected route"""
    app = FastAPI()
    app.state.settings = settings

    @app.exception_handler(ServiceError)
    async def service_error(request: Request, ex: ServiceError):
        return error_response(ex)

    @app.get("/")
    def root(request: Request, user_id: str = Depends(require_user)):
        return {"user_id": user_id, "state": request.state.user_id}

    return TestClient(app)


def test_valid_token(guarded, settings):
    res = guarded.get("/", headers=bearer(issue_access_token("user-1", settings)))
    assert res.status_code == 200
    assert res.json() == {"user_id": "user-1", "state": "user-1"}


@pytest.mark.parametrize("headers", [
    {},
    {"Authorization": ""},
    {"Authorization": "Bearer"},
    {"Authorization": "Basic dXNlcjpwYXNz"},
    {"Authorization": "bearer lowercase-scheme"},
])
def test_missing_credential(guarded, headers):
    res = guarded.get("/", headers=headers)
    assert res.status_code == 401
    assert res.json() == {"error": "authentication_failed", "detail": "authorization_header_empty"}


def test_scheme_without_token(guarded):
    res = guarded.get("/", headers={"Authorization": "Bearer  \t"})
    assert res.status_code == 401


def test_bogus_token(guarded):
    res = guarded.get("/", headers=bearer("BOGUS"))
    assert res.status_code == 403
    assert res.json()["detail"] == "jwt_verification_failed"


def test_expired_token(guarded, settings):
    issued = datetime.now(timezone.utc) - timedelta(hours=1)
    res = guarded.get("/", headers=bearer(issue_access_token("user-1", settings, now=issued)))
    assert res.status_code == 403


def test_token_from_other_key(guarded, settings):
    other = settings.model_copy(update={"access_token_secret": settings.refresh_token_secret})
    res = guarded.get("/", headers=bearer(issue_access_token("user-1", other)))
    assert res.status_code == 403
