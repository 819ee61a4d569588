"""
Folder Routes
CRUD operations for the per-user folder tree.

Tree invariants:
  - Exactly one Root folder (parent_id NULL) per user; it cannot be deleted,
    renamed or moved.
  - Names are unique among siblings.
  - A folder only ever gets a parent that already exists and is not one of
    its own descendants, so the tree never contains a cycle.
  - Deleting a folder deletes its subfolders, items and item versions.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models import User, Folder, ROOT_FOLDER_NAME
from app.schemas import FolderCreate, FolderUpdate, FolderResponse, MessageResponse
from app.utils.permissions import (
    get_owned_folder,
    check_not_root,
    check_sibling_name_free,
    is_descendant,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/folders", tags=["Folders"])


@router.get("", response_model=List[FolderResponse])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Return all of the user's folders ordered by name; the client builds the tree."""
    return db.query(Folder).filter(
        Folder.user_id == current_user.id
    ).order_by(Folder.name).all()


@router.post("", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    folder_data: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a folder under an existing parent (or at top level)."""
    if folder_data.parent_id is not None:
        get_owned_folder(db, current_user, folder_data.parent_id, detail="Parent folder not found")

    check_sibling_name_free(db, current_user, folder_data.name, folder_data.parent_id)

    folder = Folder(
        name=folder_data.name,
        parent_id=folder_data.parent_id,
        user_id=current_user.id
    )
    db.add(folder)
    db.commit()
    db.refresh(folder)

    return folder


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    folder_data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Rename and/or move a folder."""
    folder = get_owned_folder(db, current_user, folder_id)

    if folder.is_root and (folder_data.name != ROOT_FOLDER_NAME or folder_data.parent_id is not None):
        check_not_root(folder, action="rename or move")

    if folder_data.parent_id is not None:
        get_owned_folder(db, current_user, folder_data.parent_id, detail="Parent folder not found")
        if is_descendant(db, folder, folder_data.parent_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot move a folder into itself or one of its subfolders"
            )

    check_sibling_name_free(
        db, current_user, folder_data.name, folder_data.parent_id, exclude_id=folder.id
    )

    folder.name = folder_data.name
    folder.parent_id = folder_data.parent_id
    db.commit()
    db.refresh(folder)

    return folder


@router.delete("/{folder_id}", response_model=MessageResponse)
async def delete_folder(
    folder_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete a folder with everything below it. The Root folder is protected."""
    folder = get_owned_folder(db, current_user, folder_id)
    check_not_root(folder)

    db.delete(folder)
    db.commit()

    logger.info(f"User {current_user.id} deleted folder {folder_id}")

    return {"message": "Folder deleted successfully"}
