import io
import re
from typing import List
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import StreamingResponse

from filevault.core.config import Settings
from filevault.core.errors import ValidationFailed, operation
from filevault.dependencies import app_settings, get_file_storage
from filevault.guard import require_user
from filevault.schemas import FileMetadata, StoredFileResponse
from filevault.services.storage import FileStorage, IncomingFile

router = APIRouter()

SYSTEM_NAME_PATTERN = re.compile(r"[A-Za-z0-9]+")


def _check_file_id(file_id: str, settings: Settings) -> None:
    if len(file_id) != settings.random_id_length or not SYSTEM_NAME_PATTERN.fullmatch(file_id):
        raise ValidationFailed("invalid_file_id")


def _incoming(upload: UploadFile) -> IncomingFile:
    return IncomingFile(
        stream=upload.file,
        original_name=upload.filename or "",
        mime=upload.content_type or "application/octet-stream",
    )


# --- upload a new file ---
@router.post("/file", response_model=StoredFileResponse)
def create_file(
    upload: UploadFile = File(..., alias="userFile"),
    user_id: str = Depends(require_user),
    storage: FileStorage = Depends(get_file_storage),
):
    with operation("create_file_failed"):
        blob = storage.create(user_id, _incoming(upload))
    return {"sizeBytes": blob.size_bytes, "name": blob.system_name}


# --- replace an existing file ---
@router.put("/file/{file_id}", response_model=StoredFileResponse)
def update_file(
    file_id: str,
    upload: UploadFile = File(..., alias="userFile"),
    user_id: str = Depends(require_user),
    settings: Settings = Depends(app_settings),
    storage: FileStorage = Depends(get_file_storage),
):
    with operation("update_file_failed"):
        _check_file_id(file_id, settings)
        blob = storage.replace(user_id, file_id, _incoming(upload))
    return {"sizeBytes": blob.size_bytes, "name": blob.system_name}


# --- metadata, or the bytes themselves with ?download=1 ---
@router.get("/file/{file_id}")
def get_file(
    file_id: str,
    download: int = Query(0, ge=0, le=1),
    user_id: str = Depends(require_user),
    settings: Settings = Depends(app_settings),
    storage: FileStorage = Depends(get_file_storage),
):
    with operation("get_file_failed"):
        _check_file_id(file_id, settings)
        if not download:
            return storage.get_metadata(user_id, file_id)
        blob = storage.download(user_id, file_id)

    return StreamingResponse(
        io.BytesIO(blob.content),
        media_type=blob.mime,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(blob.original_name)}"
        },
    )


# --- list the caller's files, one page at a time ---
@router.get("/file", response_model=List[FileMetadata])
def list_files(
    page: int = Query(1, ge=1),
    list_size: int = Query(..., alias="listSize", ge=1),
    user_id: str = Depends(require_user),
    storage: FileStorage = Depends(get_file_storage),
):
    with operation("list_files_failed"):
        return storage.list(user_id, page, list_size)


# --- delete a file ---
@router.delete("/file/{file_id}")
def delete_file(
    file_id: str,
    user_id: str = Depends(require_user),
    settings: Settings = Depends(app_settings),
    storage: FileStorage = Depends(get_file_storage),
):
    with operation("delete_file_failed"):
        _check_file_id(file_id, settings)
        storage.delete(user_id, file_id)
    return {"detail": "deleted"}
