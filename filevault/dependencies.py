from fastapi import Depends, Request
from sqlalchemy.orm import Session

from filevault.core.config import Settings
from filevault.services.accounts import AccountService
from filevault.services.storage import FileStorage
from filevault.services.tokens import RefreshTokenService
from filevault.store import IdentityStore


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


# DB session dependency
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_store(db: Session = Depends(get_db)) -> IdentityStore:
    return IdentityStore(db)


def get_refresh_tokens(settings: Settings = Depends(app_settings),
                       store: IdentityStore = Depends(get_store)) -> RefreshTokenService:
    return RefreshTokenService(settings, store)


def get_accounts(settings: Settings = Depends(app_settings),
                 store: IdentityStore = Depends(get_store),
                 refresh_tokens: RefreshTokenService = Depends(get_refresh_tokens)) -> AccountService:
    return AccountService(settings, store, refresh_tokens)


def get_file_storage(settings: Settings = Depends(app_settings),
                     store: IdentityStore = Depends(get_store)) -> FileStorage:
    return FileStorage(settings, store)
