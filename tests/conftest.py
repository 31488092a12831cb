"""Shared pytest fixtures.

Every test gets its own SQLite database and users root under ``tmp_path``.
"""
import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from filevault.core.config import Settings
from filevault.core.security import hash_password
from filevault.factory import create_app
from filevault.models.database import Base, create_db_engine, create_session_factory
from filevault.services.storage import FileStorage, IncomingFile
from filevault.services.tokens import RefreshTokenService
from filevault.store import IdentityStore

PASSWORD = "Str0ng!Pass"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        database_url=f"sqlite:///{tmp_path / 'pytest.db'}",
        users_files_path=str(tmp_path / "users_files"),
        access_token_secret="testing_access_secret_0123456789abcdef",
        refresh_token_secret="testing_refresh_secret_0123456789abcdef",
        cookie_secure=False,
        file_size_limit_bytes=1024,
        max_files_list=5,
    )


@pytest.fixture
def db(settings):
    engine = create_db_engine(settings.database_url)
    Base.metadata.create_all(bind=engine)
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def store(db):
    return IdentityStore(db)


@pytest.fixture
def user(store):
    return store.create_user(hash_password(PASSWORD), email="a@b.com")


@pytest.fixture
def other_user(store):
    return store.create_user(hash_password(PASSWORD), phone="+15550001111")


@pytest.fixture
def refresh_tokens(settings, store):
    return RefreshTokenService(settings, store)


@pytest.fixture
def storage(settings, store):
    return FileStorage(settings, store)


@pytest.fixture
def users_root(settings):
    return Path(settings.users_files_path)


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


def jpeg(content: bytes = b"0123456789", name: str = "photo.jpg") -> IncomingFile:
    return IncomingFile(stream=io.BytesIO(content), original_name=name, mime="image/jpeg")


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
