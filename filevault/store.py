"""SQLAlchemy-backed record store for users, refresh tokens and file records."""

import logging
from contextlib import contextmanager
from typing import Iterator, List, Optional

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from filevault.core.errors import ValidationFailed
from filevault.models.file import FileRecord
from filevault.models.refresh_token import RefreshToken
from filevault.models.user import User

log = logging.getLogger(__name__)


class IdentityStore:
    """Query primitives over one request-scoped session.

    Every write commits immediately. On a database error the session is rolled
    back and the ``SQLAlchemyError`` propagates to the caller unchanged.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _writing(self) -> Iterator[None]:
        try:
            yield
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise

    # --- users ---

    def find_user_by_email_or_phone(self, email_or_phone: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(or_(User.email == email_or_phone, User.phone == email_or_phone))
            .first()
        )

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def create_user(self, password_hash: str, email: Optional[str] = None,
                    phone: Optional[str] = None) -> User:
        if not email and not phone:
            raise ValidationFailed("email_and_phone_empty")
        user = User(email=email or None, phone=phone or None, password_hash=password_hash)
        with self._writing():
            self.db.add(user)
        return user

    # --- refresh tokens ---

    def create_refresh_token(self, user_id: str, token: str) -> RefreshToken:
        row = RefreshToken(user_id=user_id, token=token)
        with self._writing():
            self.db.add(row)
        return row

    def find_refresh_token_by_value(self, token: str) -> Optional[RefreshToken]:
        return self.db.query(RefreshToken).filter(RefreshToken.token == token).first()

    def delete_refresh_token_by_value(self, token: str) -> bool:
        with self._writing():
            deleted = (
                self.db.query(RefreshToken)
                .filter(RefreshToken.token == token)
                .delete(synchronize_session=False)
            )
        return deleted > 0

    # --- files ---

    def find_file_by_system_name(self, system_name: str) -> Optional[FileRecord]:
        return self.db.query(FileRecord).filter(FileRecord.system_name == system_name).first()

    def create_file(self, **fields) -> FileRecord:
        record = FileRecord(**fields)
        with self._writing():
            self.db.add(record)
        return record

    def update_file_by_id(self, file_id: str, **fields) -> bool:
        with self._writing():
            updated = (
                self.db.query(FileRecord)
                .filter(FileRecord.id == file_id)
                .update(fields, synchronize_session="fetch")
            )
        return updated > 0

    def delete_file_by_system_name(self, system_name: str) -> bool:
        with self._writing():
            deleted = (
                self.db.query(FileRecord)
                .filter(FileRecord.system_name == system_name)
                .delete(synchronize_session=False)
            )
        return deleted > 0

    def list_files(self, user_id: str, offset: int, limit: int) -> List[FileRecord]:
        return (
            self.db.query(FileRecord)
            .filter(FileRecord.user_id == user_id)
            .order_by(FileRecord.uploaded_at.desc(), FileRecord.id)
            .offset(offset)
            .limit(limit)
            .all()
        )
