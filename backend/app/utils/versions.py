"""
Versioned Content Store
Append-only history of an item's encrypted content

Every item gets version 1 when it is created. Later versions are appended
only when the content really changes. Nothing here commits: callers run these
helpers inside their own transaction together with the item write.
"""

from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.exceptions import IntegrityError
from app.models import Item, ItemVersion


def append_version(db: Session, item_id: int, ciphertext: Optional[str]) -> int:
    """
    Append a new immutable version for an item.

    Args:
        db: Database session
        item_id: Parent item ID
        ciphertext: Encrypted content snapshot

    Returns:
        The assigned version number (1 for the first version)

    Raises:
        IntegrityError: If the item does not exist
    """
    if db.get(Item, item_id) is None:
        raise IntegrityError(f"Cannot append version: item {item_id} does not exist")

    current = db.query(func.max(ItemVersion.version_number)).filter(
        ItemVersion.item_id == item_id
    ).scalar()
    next_version = (current or 0) + 1

    db.add(ItemVersion(
        item_id=item_id,
        encrypted_content=ciphertext,
        version_number=next_version,
    ))
    db.flush()

    return next_version


def list_versions(db: Session, item_id: int) -> List[ItemVersion]:
    """Return all versions of an item, newest first"""
    return db.query(ItemVersion).filter(
        ItemVersion.item_id == item_id
    ).order_by(ItemVersion.version_number.desc()).all()


def content_changed(item: Item, new_ciphertext: str, fingerprint: Optional[str] = None) -> bool:
    """
    Decide whether an update carries new content.

    Fingerprints compare plaintexts and are preferred. Without them the
    ciphertexts are compared, which treats a re-encryption of the same text
    as a change.
    """
    if fingerprint and item.content_fingerprint:
        return fingerprint != item.content_fingerprint
    return new_ciphertext != item.encrypted_content


def record_content_change(
    db: Session,
    item: Item,
    new_ciphertext: Optional[str],
    fingerprint: Optional[str] = None,
) -> Optional[int]:
    """
    Apply a content update to an item, appending a version if it changed.

    Returns:
        The new version number, or None when the content is unchanged
    """
    if new_ciphertext is None or not content_changed(item, new_ciphertext, fingerprint):
        if fingerprint and not item.content_fingerprint:
            item.content_fingerprint = fingerprint
        return None

    item.encrypted_content = new_ciphertext
    item.content_fingerprint = fingerprint
    return append_version(db, item.id, new_ciphertext)
