"""
Backup Codec
Encrypted export and import of a user's complete folder/item graph

Envelope (wire format, stable across releases):
    {"version": "1.0.0", "encrypted": true, "data": "<base64>"}

data is base64 of [nonce 16B][GCM tag 16B][ciphertext], the ciphertext being
the UTF-8 JSON document
    {"version", "timestamp", "user": {"email"}, "folders": [...], "items": [...]}

The whole snapshot is encrypted as one unit with the account key: a wrong key
or a single corrupted byte makes the entire bundle unreadable.

File payloads are never included. File items keep their metadata with
file_path replaced by FILE_DATA_SENTINEL and are skipped on import.

Import runs under a per-user lock and inside one transaction. Decryption and
shape errors abort before anything is written; any later failure rolls back
every delete and insert.
"""

import base64
import binascii
import json
import logging
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Tuple

from sqlalchemy.orm import Session

from app.exceptions import DecryptionError, MalformedBackupError
from app.models import Folder, Item, User, ROOT_FOLDER_NAME, ITEM_TYPES
from app.utils.cipher import KeyLike, decrypt_bytes, encrypt_bytes
from app.utils.versions import append_version

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = "1.0.0"
SUPPORTED_FORMAT_VERSIONS = {"1.0.0"}
FILE_DATA_SENTINEL = "[FILE_DATA_NOT_INCLUDED]"


class ImportResult(NamedTuple):
    folders_imported: int
    items_imported: int


# ────────────────────────────────────────────────────────────────────
# Per-user mutual exclusion
# ────────────────────────────────────────────────────────────────────

# user_id -> [lock, number of holders and waiters]
_user_locks: Dict[Any, list] = {}
_user_locks_guard = threading.Lock()


@contextmanager
def user_lock(user_id) -> Iterator[None]:
    """
    Hold the process-wide backup lock for one user.

    An entry lives only while someone holds or waits for it.
    """
    with _user_locks_guard:
        entry = _user_locks.setdefault(user_id, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _user_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _user_locks[user_id]


# ────────────────────────────────────────────────────────────────────
# Serialization
# ────────────────────────────────────────────────────────────────────

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_folder(folder: Folder) -> Dict[str, Any]:
    return {
        "id": folder.id,
        "name": folder.name,
        "parent_id": folder.parent_id,
        "user_id": folder.user_id,
        "created_at": _iso(folder.created_at),
        "updated_at": _iso(folder.updated_at),
    }


def serialize_item(item: Item) -> Dict[str, Any]:
    """Item row as exported; file payload locations are masked"""
    return {
        "id": item.id,
        "name": item.name,
        "type": item.type,
        "encrypted_content": item.encrypted_content,
        "content_fingerprint": item.content_fingerprint,
        "file_path": FILE_DATA_SENTINEL if item.type == "file" else item.file_path,
        "file_size": item.file_size,
        "language": item.language,
        "tags": list(item.tags or []),
        "folder_id": item.folder_id,
        "user_id": item.user_id,
        "access_count": item.access_count,
        "last_accessed": _iso(item.last_accessed),
        "is_pinned": item.is_pinned,
        "created_at": _iso(item.created_at),
        "updated_at": _iso(item.updated_at),
    }


def build_snapshot(db: Session, user: User) -> Dict[str, Any]:
    """Plaintext backup document for a user"""
    folders = db.query(Folder).filter(Folder.user_id == user.id).order_by(Folder.id).all()
    items = db.query(Item).filter(Item.user_id == user.id).order_by(Item.id).all()

    return {
        "version": BACKUP_FORMAT_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "user": {"email": user.email},
        "folders": [serialize_folder(f) for f in folders],
        "items": [serialize_item(i) for i in items],
    }


# ────────────────────────────────────────────────────────────────────
# Export
# ────────────────────────────────────────────────────────────────────

def export_bundle(db: Session, user: User, key: KeyLike) -> Dict[str, Any]:
    """
    Export a user's folders and items as an encrypted bundle.

    Args:
        db: Database session
        user: Owner of the data
        key: The user's account key

    Returns:
        Envelope dict ready to be sent as JSON
    """
    with user_lock(user.id):
        snapshot = build_snapshot(db, user)

    payload = json.dumps(snapshot, indent=2).encode("utf-8")
    blob = encrypt_bytes(payload, key)

    logger.info(
        f"Exported backup for user {user.id}: "
        f"{len(snapshot['folders'])} folders, {len(snapshot['items'])} items"
    )

    return {
        "version": BACKUP_FORMAT_VERSION,
        "encrypted": True,
        "data": base64.b64encode(blob).decode("ascii"),
    }


# ────────────────────────────────────────────────────────────────────
# Import
# ────────────────────────────────────────────────────────────────────

def open_bundle(bundle: Any, key: KeyLike) -> Dict[str, Any]:
    """
    Decrypt and validate a bundle without touching the database.

    Raises:
        MalformedBackupError: Envelope or payload has the wrong shape
        DecryptionError: Wrong key or corrupted data
    """
    if not isinstance(bundle, dict):
        raise MalformedBackupError("Invalid backup data")

    data = bundle.get("data")
    if not isinstance(data, str) or not data:
        raise MalformedBackupError("Invalid backup data")

    version = bundle.get("version", BACKUP_FORMAT_VERSION)
    if version not in SUPPORTED_FORMAT_VERSIONS:
        raise MalformedBackupError(f"Unsupported backup version: {version}")

    if bundle.get("encrypted", True) is not True:
        raise MalformedBackupError("Backup is not encrypted")

    try:
        blob = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("Backup data is not valid base64")

    plaintext = decrypt_bytes(blob, key)

    try:
        payload = json.loads(plaintext.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise MalformedBackupError("Backup payload is not valid JSON")

    _validate_payload(payload)
    return payload


def _validate_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise MalformedBackupError()

    folders = payload.get("folders")
    items = payload.get("items")
    if not isinstance(folders, list) or not isinstance(items, list):
        raise MalformedBackupError()

    for folder in folders:
        if not isinstance(folder, dict) or not _is_name(folder.get("name")):
            raise MalformedBackupError("Invalid folder entry in backup")
        if folder.get("id") is None or not _is_ref(folder["id"]) or not _is_ref(folder.get("parent_id")):
            raise MalformedBackupError("Invalid folder reference in backup")

    for item in items:
        if not isinstance(item, dict) or not _is_name(item.get("name")):
            raise MalformedBackupError("Invalid item entry in backup")
        if item.get("type") not in ITEM_TYPES:
            raise MalformedBackupError(f"Invalid item type in backup: {item.get('type')}")
        if not _is_ref(item.get("folder_id")):
            raise MalformedBackupError("Invalid item reference in backup")
        for field in ("encrypted_content", "content_fingerprint", "language"):
            if not isinstance(item.get(field), (str, type(None))):
                raise MalformedBackupError(f"Invalid item field in backup: {field}")
        tags = item.get("tags")
        if tags is not None and not (isinstance(tags, list) and all(isinstance(t, str) for t in tags)):
            raise MalformedBackupError("Invalid item tags in backup")


def _is_name(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _is_ref(value: Any) -> bool:
    """Source IDs are only used as mapping keys: int, str or None"""
    if isinstance(value, bool):
        return False
    return value is None or isinstance(value, (int, str))


def _find_sibling(db: Session, user_id, name: str, parent_id) -> Optional[Folder]:
    query = db.query(Folder).filter(Folder.user_id == user_id, Folder.name == name)
    if parent_id is None:
        query = query.filter(Folder.parent_id.is_(None))
    else:
        query = query.filter(Folder.parent_id == parent_id)
    return query.first()


def _clear_user_data(db: Session, user: User) -> None:
    """Delete every folder (and through cascade, item and version) of a user"""
    top_level = db.query(Folder).filter(
        Folder.user_id == user.id,
        Folder.parent_id.is_(None)
    ).all()
    for folder in top_level:
        db.delete(folder)
    db.flush()

    # Items are always inside a folder; this only catches orphans
    for item in db.query(Item).filter(Item.user_id == user.id).all():
        db.delete(item)
    db.flush()


def _replay_folders(db: Session, user: User, folders: List[Dict[str, Any]]) -> Tuple[Dict[Any, int], int]:
    """
    Recreate folders; return the old-id -> new-id mapping and the number created.

    A folder whose parent has not been mapped yet is retried after the rest
    of the pass, so children listed before their parents still resolve.
    Folders whose parent never resolves are dropped. A folder matching an
    existing sibling by name (including the destination Root) is mapped onto
    that sibling instead of being duplicated.
    """
    mapping: Dict[Any, int] = {}
    created = 0
    pending = list(folders)

    while pending:
        deferred = []
        for entry in pending:
            source_parent = entry.get("parent_id")
            if source_parent is None:
                parent_id = None
            elif source_parent in mapping:
                parent_id = mapping[source_parent]
            else:
                deferred.append(entry)
                continue

            existing = _find_sibling(db, user.id, entry["name"], parent_id)
            if existing is not None:
                mapping[entry["id"]] = existing.id
                continue

            folder = Folder(name=entry["name"], parent_id=parent_id, user_id=user.id)
            db.add(folder)
            db.flush()
            mapping[entry["id"]] = folder.id
            created += 1

        if len(deferred) == len(pending):
            logger.info(f"Skipped {len(deferred)} backup folders with unresolvable parents")
            break
        pending = deferred

    return mapping, created


def _replay_items(db: Session, user: User, items: List[Dict[str, Any]], mapping: Dict[Any, int]) -> int:
    imported = 0
    for entry in items:
        if entry["type"] == "file":
            continue

        folder_id = mapping.get(entry.get("folder_id"))
        if folder_id is None:
            continue

        item = Item(
            name=entry["name"],
            type=entry["type"],
            encrypted_content=entry.get("encrypted_content"),
            content_fingerprint=entry.get("content_fingerprint"),
            language=entry.get("language"),
            tags=list(entry.get("tags") or []),
            is_pinned=bool(entry.get("is_pinned", False)),
            folder_id=folder_id,
            user_id=user.id,
        )
        db.add(item)
        db.flush()
        append_version(db, item.id, item.encrypted_content)
        imported += 1

    return imported


def _ensure_root(db: Session, user: User) -> None:
    if _find_sibling(db, user.id, ROOT_FOLDER_NAME, None) is None:
        db.add(Folder(name=ROOT_FOLDER_NAME, parent_id=None, user_id=user.id))
        db.flush()


def import_bundle(
    db: Session,
    bundle: Any,
    user: User,
    key: KeyLike,
    clear_existing: bool = False,
) -> ImportResult:
    """
    Restore a bundle into a user's account.

    Args:
        db: Database session
        bundle: Envelope dict as produced by export_bundle
        user: Destination account
        key: The destination account key
        clear_existing: Delete the account's folders and items first

    Returns:
        Counts of folders and items actually created

    Raises:
        DecryptionError: Wrong key or corrupted bundle (nothing written)
        MalformedBackupError: Bad envelope or payload (nothing written)
    """
    payload = open_bundle(bundle, key)

    with user_lock(user.id):
        try:
            if clear_existing:
                _clear_user_data(db, user)

            mapping, folders_imported = _replay_folders(db, user, payload["folders"])
            items_imported = _replay_items(db, user, payload["items"], mapping)

            _ensure_root(db, user)
            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Backup import failed for user {user.id}, rolled back", exc_info=True)
            raise

    logger.info(
        f"Imported backup for user {user.id}: "
        f"{folders_imported} folders, {items_imported} items"
    )
    return ImportResult(folders_imported, items_imported)
