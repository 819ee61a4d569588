"""
Ownership and Access Utilities

Every folder and item belongs to exactly one user. Lookups by ID always
filter on the owner, so another user's rows behave as if they did not exist
(404, never 403). The only 403 in the vault is deleting or moving the Root
folder.
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.models import User, Folder, Item


class PermissionError(HTTPException):
    """Custom permission exception with standard HTTP 403 response."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


def get_owned_folder(db: Session, user: User, folder_id: int, detail: str = "Folder not found") -> Folder:
    """
    Fetch a folder owned by the user.

    Raises:
        HTTPException: 404 if the folder does not exist or belongs to someone else
    """
    folder = db.query(Folder).filter(
        Folder.id == folder_id,
        Folder.user_id == user.id
    ).first()

    if not folder:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail
        )

    return folder


def get_owned_item(db: Session, user: User, item_id: int, item_type: str = None) -> Item:
    """
    Fetch an item owned by the user, optionally restricted to one type.

    Raises:
        HTTPException: 404 if not found
    """
    query = db.query(Item).filter(
        Item.id == item_id,
        Item.user_id == user.id
    )
    if item_type is not None:
        query = query.filter(Item.type == item_type)

    item = query.first()
    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found" if item_type == "file" else "Item not found"
        )

    return item


def check_not_root(folder: Folder, action: str = "delete") -> None:
    """Reject destructive operations on the Root folder"""
    if folder.is_root:
        raise PermissionError(f"Cannot {action} root folder")


def check_sibling_name_free(db: Session, user: User, name: str, parent_id, exclude_id: int = None) -> None:
    """
    Enforce unique folder names among siblings.

    Raises:
        HTTPException: 409 if a sibling with that name exists
    """
    query = db.query(Folder).filter(
        Folder.user_id == user.id,
        Folder.name == name,
    )
    if parent_id is None:
        query = query.filter(Folder.parent_id.is_(None))
    else:
        query = query.filter(Folder.parent_id == parent_id)
    if exclude_id is not None:
        query = query.filter(Folder.id != exclude_id)

    if query.first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Folder with this name already exists in the same location"
        )


def is_descendant(db: Session, folder: Folder, candidate_id: int) -> bool:
    """True if candidate_id is folder itself or somewhere below it"""
    frontier = [folder.id]
    seen = set()
    while frontier:
        current = frontier.pop()
        if current == candidate_id:
            return True
        if current in seen:
            continue
        seen.add(current)
        children = db.query(Folder.id).filter(Folder.parent_id == current).all()
        frontier.extend(child_id for (child_id,) in children)
    return False
