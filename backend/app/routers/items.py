"""
Item Routes
CRUD operations for encrypted vault items.

Zero-Knowledge Principle:
  Item bodies arrive already encrypted with the account key. This router
  stores and returns the opaque blobs; it never decrypts them. Search only
  looks at item names.

Versioning:
  Creation records version 1. An update that changes the content appends the
  next version in the same transaction (see app.utils.versions).
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models import User, Item
from app.schemas import (
    ItemCreate,
    ItemUpdate,
    ItemResponse,
    ItemType,
    ItemVersionResponse,
    PinResponse,
    MessageResponse,
)
from app.utils.permissions import get_owned_folder, get_owned_item
from app.utils.versions import append_version, list_versions, record_content_change

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/items", tags=["Items"])

FREQUENT_ITEMS_LIMIT = 20


# ────────────────────────────────────────────────────────────────────
# READ (list)
# ────────────────────────────────────────────────────────────────────

@router.get("", response_model=List[ItemResponse])
async def get_items(
    folder_id: Optional[int] = Query(None, description="Only items in this folder"),
    type: Optional[ItemType] = Query(None, description="Only items of this type"),
    search: Optional[str] = Query(None, description="Case-insensitive match on item name"),
    tags: Optional[List[str]] = Query(None, description="Items carrying any of these tags"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    List the user's items, most recently updated first.

    Tags live in a JSON column, so the tag filter is applied after the query.
    """
    query = db.query(Item).filter(Item.user_id == current_user.id)

    if folder_id is not None:
        query = query.filter(Item.folder_id == folder_id)
    if type is not None:
        query = query.filter(Item.type == type.value)
    if search:
        query = query.filter(Item.name.ilike(f"%{search}%"))

    items = query.order_by(Item.updated_at.desc(), Item.id.desc()).all()

    if tags:
        wanted = set(tags)
        items = [item for item in items if wanted.intersection(item.tags or [])]

    return items


@router.get("/frequent", response_model=List[ItemResponse])
async def get_frequent_items(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Pinned or previously opened items: pinned first, then by access count and recency."""
    return db.query(Item).filter(
        Item.user_id == current_user.id,
        (Item.access_count > 0) | (Item.is_pinned.is_(True))
    ).order_by(
        Item.is_pinned.desc(),
        Item.access_count.desc(),
        Item.last_accessed.desc(),
    ).limit(FREQUENT_ITEMS_LIMIT).all()


# ────────────────────────────────────────────────────────────────────
# READ (single)
# ────────────────────────────────────────────────────────────────────

@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a single item; counts as an access."""
    item = get_owned_item(db, current_user, item_id)

    item.access_count = (item.access_count or 0) + 1
    item.last_accessed = datetime.utcnow()
    db.commit()
    db.refresh(item)

    return item


# ────────────────────────────────────────────────────────────────────
# CREATE
# ────────────────────────────────────────────────────────────────────

@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(
    item_data: ItemCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Store a new encrypted item and its first version."""
    get_owned_folder(db, current_user, item_data.folder_id)

    try:
        item = Item(
            name=item_data.name,
            type=item_data.type.value,
            encrypted_content=item_data.encrypted_content,
            content_fingerprint=item_data.content_fingerprint,
            folder_id=item_data.folder_id,
            user_id=current_user.id,
            language=item_data.language,
            tags=item_data.tags,
        )
        db.add(item)
        db.flush()

        append_version(db, item.id, item.encrypted_content)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(item)
    return item


# ────────────────────────────────────────────────────────────────────
# UPDATE
# ────────────────────────────────────────────────────────────────────

@router.put("/{item_id}", response_model=ItemResponse)
async def update_item(
    item_id: int,
    item_data: ItemUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Update an item.
    Client re-encrypts the full body on content changes and sends the new blob,
    optionally with the plaintext fingerprint.
    """
    item = get_owned_item(db, current_user, item_id)

    if item_data.folder_id is not None:
        get_owned_folder(db, current_user, item_data.folder_id, detail="Target folder not found")
        item.folder_id = item_data.folder_id

    if item_data.name is not None:
        item.name = item_data.name
    if item_data.language is not None:
        item.language = item_data.language
    if item_data.tags is not None:
        item.tags = item_data.tags

    try:
        version = record_content_change(
            db, item, item_data.encrypted_content, item_data.content_fingerprint
        )
        item.updated_at = datetime.utcnow()
        db.commit()
    except Exception:
        db.rollback()
        raise

    if version is not None:
        logger.info(f"Item {item.id} now at version {version}")

    db.refresh(item)
    return item


@router.put("/{item_id}/pin", response_model=PinResponse)
async def toggle_pin(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Toggle the pin flag."""
    item = get_owned_item(db, current_user, item_id)

    item.is_pinned = not item.is_pinned
    db.commit()

    return {"pinned": item.is_pinned}


# ────────────────────────────────────────────────────────────────────
# VERSIONS
# ────────────────────────────────────────────────────────────────────

@router.get("/{item_id}/versions", response_model=List[ItemVersionResponse])
async def get_item_versions(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Version history of an item, newest first."""
    get_owned_item(db, current_user, item_id)
    return list_versions(db, item_id)


# ────────────────────────────────────────────────────────────────────
# DELETE
# ────────────────────────────────────────────────────────────────────

@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_item(
    item_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an item together with its version history."""
    item = get_owned_item(db, current_user, item_id)

    db.delete(item)
    db.commit()

    return {"message": "Item deleted successfully"}
