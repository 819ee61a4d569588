"""
File Routes
Upload, download and delete of file items.

File bytes live on disk under settings.UPLOAD_DIR with a random name. When
the upload asks for encryption the bytes are sealed with the account key
(same nonce || tag || ciphertext layout as item content) and the item's
encrypted_content is set to the marker "encrypted". File payloads are never
part of backups.
"""

import logging
import os
import secrets
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user, get_account_key
from app.models import User, Item
from app.schemas import ItemResponse, MessageResponse
from app.utils.cipher import encrypt_bytes, decrypt_bytes
from app.utils.permissions import get_owned_folder, get_owned_item
from app.utils.versions import append_version

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/files", tags=["Files"])

ENCRYPTED_FILE_MARKER = "encrypted"


def _storage_path(original_name: str) -> str:
    _, ext = os.path.splitext(original_name or "")
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    return os.path.join(settings.UPLOAD_DIR, secrets.token_hex(16) + ext)


@router.post("/upload", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    folder_id: int = Form(...),
    encrypt: bool = Form(False),
    current_user: User = Depends(get_current_user),
    key: bytes = Depends(get_account_key),
    db: Session = Depends(get_db)
):
    """
    Store an uploaded file as a file item

    Args:
        file: Uploaded file
        folder_id: Destination folder
        encrypt: Encrypt the bytes at rest with the account key

    Raises:
        HTTPException: 404 unknown folder, 413 file too large
    """
    get_owned_folder(db, current_user, folder_id)

    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Maximum size is {settings.MAX_UPLOAD_SIZE / 1024 / 1024:.0f} MB."
        )

    stored = encrypt_bytes(content, key) if encrypt else content
    path = _storage_path(file.filename)

    with open(path, "wb") as f:
        f.write(stored)

    try:
        item = Item(
            name=file.filename or os.path.basename(path),
            type="file",
            encrypted_content=ENCRYPTED_FILE_MARKER if encrypt else None,
            file_path=path,
            file_size=len(content),
            folder_id=folder_id,
            user_id=current_user.id,
        )
        db.add(item)
        db.flush()
        append_version(db, item.id, item.encrypted_content)
        db.commit()
    except Exception:
        db.rollback()
        try:
            os.remove(path)
        except OSError:
            logger.warning(f"Could not clean up uploaded file {path}")
        raise

    db.refresh(item)
    return item


@router.get("/download/{item_id}")
async def download_file(
    item_id: int,
    current_user: User = Depends(get_current_user),
    key: bytes = Depends(get_account_key),
    db: Session = Depends(get_db)
):
    """
    Return the file bytes, decrypted if they were stored encrypted.
    A DecryptionError propagates to the handler in app.main.
    """
    item = get_owned_item(db, current_user, item_id, item_type="file")

    if not item.file_path or not os.path.exists(item.file_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on disk"
        )

    with open(item.file_path, "rb") as f:
        content = f.read()

    if item.encrypted_content == ENCRYPTED_FILE_MARKER:
        content = decrypt_bytes(content, key)

    item.access_count = (item.access_count or 0) + 1
    item.last_accessed = datetime.utcnow()
    db.commit()

    return Response(
        content=content,
        media_type="application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{item.name}"'}
    )


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_file(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a file item and its bytes on disk."""
    item = get_owned_item(db, current_user, item_id, item_type="file")

    if item.file_path:
        try:
            os.remove(item.file_path)
        except OSError:
            # Database row still goes away
            logger.warning(f"Could not delete file from disk for item {item.id}")

    db.delete(item)
    db.commit()

    return {"message": "File deleted successfully"}
