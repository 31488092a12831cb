"""Disk-backed blob storage kept in lock-step with ``FileRecord`` rows.

Blobs live at ``<users_files_path>/<user_id>/<system_name>``. The disk write
and the record write are independent, so each operation orders them to leave
at worst an orphaned blob behind, never a record without one:

* create: write blob, then record; a failed record write removes the blob.
* update: write new blob, swap the record, then remove the old blob.
* delete: remove the record, then the blob.
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterator, List

from filevault.core.config import Settings
from filevault.core.errors import Forbidden, Internal, NotFound, ValidationFailed
from filevault.core.security import create_random_id
from filevault.models.file import FileRecord
from filevault.store import IdentityStore

log = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass
class IncomingFile:
    """An upload as handed over by the HTTP layer."""

    stream: BinaryIO
    original_name: str
    mime: str

    @property
    def extension(self) -> str:
        # a name without a dot is its own extension
        return self.original_name.rsplit(".", 1)[-1]


@dataclass
class StagedBlob:
    system_name: str
    path: str  # relative to the users root
    size_bytes: int


@dataclass
class Blob:
    content: bytes
    mime: str
    original_name: str


class FileStorage:
    def __init__(self, settings: Settings, store: IdentityStore):
        self.settings = settings
        self.store = store
        self.root = Path(settings.users_files_path)

    # --- disk helpers ---

    def _absolute(self, relative_path: str) -> Path:
        return self.root / relative_path

    def _write(self, stream: BinaryIO, destination: Path) -> int:
        limit = self.settings.file_size_limit_bytes
        written = 0
        # "x" refuses to clobber another blob on a system name collision
        out = open(destination, "xb")
        try:
            with out:
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    written += len(chunk)
                    if written > limit:
                        raise ValidationFailed("file_too_large")
                    out.write(chunk)
        except BaseException:
            self._discard(destination)
            raise
        return written

    def _discard(self, path: Path) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            log.warning("Blob %s already gone", path)

    @contextmanager
    def _staged_blob(self, user_id: str, incoming: IncomingFile) -> Iterator[StagedBlob]:
        """Write ``incoming`` under a fresh system name.

        The blob is removed again if the body of the ``with`` block fails, so
        nothing is left on disk that no record points at.
        """
        if incoming.mime not in self.settings.acceptable_mime_types:
            raise ValidationFailed("unsupported_mime_type")

        user_dir = self.root / user_id
        user_dir.mkdir(parents=True, exist_ok=True)

        system_name = create_random_id(self.settings.random_id_length)
        destination = user_dir / system_name
        size = self._write(incoming.stream, destination)
        try:
            yield StagedBlob(system_name=system_name, path=f"{user_id}/{system_name}", size_bytes=size)
        except BaseException:
            log.info("Rolling back staged blob %s", destination)
            self._discard(destination)
            raise

    def _owned_record(self, user_id: str, system_name: str) -> FileRecord:
        record = self.store.find_file_by_system_name(system_name)
        if record is None:
            raise NotFound("file_not_found")
        if record.user_id != user_id:
            raise Forbidden("file_access_denied")
        return record

    @staticmethod
    def _record_fields(user_id: str, blob: StagedBlob, incoming: IncomingFile) -> dict:
        return {
            "path": blob.path,
            "system_name": blob.system_name,
            "original_name": incoming.original_name,
            "size_bytes": blob.size_bytes,
            "mime": incoming.mime,
            "extension": incoming.extension,
            "user_id": user_id,
        }

    # --- operations ---

    def create(self, user_id: str, incoming: IncomingFile) -> StagedBlob:
        with self._staged_blob(user_id, incoming) as blob:
            self.store.create_file(**self._record_fields(user_id, blob, incoming))
        log.info("Stored file %s for user %s (%d bytes)", blob.system_name, user_id, blob.size_bytes)
        return blob

    def get_metadata(self, user_id: str, system_name: str) -> dict:
        return self._owned_record(user_id, system_name).public_dict()

    def download(self, user_id: str, system_name: str) -> Blob:
        record = self._owned_record(user_id, system_name)
        try:
            content = self._absolute(record.path).read_bytes()
        except FileNotFoundError as ex:
            # A record without its blob is corruption, not a missing file.
            raise Internal("file_blob_missing") from ex
        return Blob(content=content, mime=record.mime, original_name=record.original_name)

    def replace(self, user_id: str, system_name: str, incoming: IncomingFile) -> StagedBlob:
        with self._staged_blob(user_id, incoming) as blob:
            original = self._owned_record(user_id, system_name)
            old_path = original.path
            if not self.store.update_file_by_id(original.id, **self._record_fields(user_id, blob, incoming)):
                raise NotFound("file_not_found")
        self._discard(self._absolute(old_path))
        log.info("Replaced file %s with %s for user %s", system_name, blob.system_name, user_id)
        return blob

    def delete(self, user_id: str, system_name: str) -> None:
        record = self._owned_record(user_id, system_name)
        path = record.path
        if not self.store.delete_file_by_system_name(system_name):
            raise NotFound("file_not_found")
        self._discard(self._absolute(path))
        log.info("Deleted file %s for user %s", system_name, user_id)

    def list(self, user_id: str, page: int, list_size: int) -> List[dict]:
        if page < 1:
            raise ValidationFailed("invalid_page")
        if not 1 <= list_size <= self.settings.max_files_list:
            raise ValidationFailed("invalid_list_size")
        records = self.store.list_files(user_id, offset=(page - 1) * list_size, limit=list_size)
        return [record.public_dict() for record in records]
