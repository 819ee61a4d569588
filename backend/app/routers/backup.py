"""
Backup Routes
Encrypted export and restore of a user's vault

Both handlers are plain (sync) functions: they run in the threadpool and the
codec's per-user lock serializes concurrent backup operations of one account.
DecryptionError and MalformedBackupError raised by the codec are turned into
400 responses by the handlers in app.main.
"""

import time

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.dependencies import get_current_user, get_account_key
from app.models import User
from app.schemas import BackupEnvelope, BackupImportRequest, BackupImportResponse
from app.utils.backup import export_bundle, import_bundle

router = APIRouter(prefix="/api/backup", tags=["Backup"])


@router.get("/export", responses={200: {"model": BackupEnvelope}})
def export_backup(
    current_user: User = Depends(get_current_user),
    key: bytes = Depends(get_account_key),
    db: Session = Depends(get_db)
):
    """
    Export all folders and items as one encrypted bundle

    Returns:
        JSON envelope as a file download
    """
    bundle = export_bundle(db, current_user, key)
    filename = f"vault-backup-{int(time.time() * 1000)}.json"

    return JSONResponse(
        content=bundle,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )


@router.post("/import", response_model=BackupImportResponse)
def import_backup(
    request: BackupImportRequest,
    current_user: User = Depends(get_current_user),
    key: bytes = Depends(get_account_key),
    db: Session = Depends(get_db)
):
    """
    Restore a bundle produced by /export

    Args:
        request: { backup_data: envelope, clear_existing: bool }

    Returns:
        Counts of folders and items actually created

    Raises:
        HTTPException: 413 if the bundle is too large
    """
    data = request.backup_data.get("data")
    if isinstance(data, str) and len(data) > settings.BACKUP_MAX_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Backup too large. Maximum size is {settings.BACKUP_MAX_SIZE / 1024 / 1024:.0f} MB."
        )

    result = import_bundle(
        db,
        request.backup_data,
        current_user,
        key,
        clear_existing=request.clear_existing,
    )

    return {
        "message": "Data imported successfully",
        "imported": {
            "folders": result.folders_imported,
            "items": result.items_imported,
        },
    }
