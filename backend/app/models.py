"""
SQLAlchemy Models
Database table definitions for users, folders, items and item versions

Encryption Design:
  - Every user owns exactly one 256-bit account key (users.encryption_key),
    generated at registration and never rotated or derived from the password.
  - Item content is encrypted with that key (AES-256-GCM) before it is
    stored; items.encrypted_content and item_versions.encrypted_content are
    opaque base64 blobs of nonce || tag || ciphertext.
  - File items keep their bytes on disk; items.encrypted_content is the
    marker "encrypted" when the disk copy is encrypted, NULL otherwise.
  - content_fingerprint is an HMAC of the plaintext under the account key,
    supplied by the client, used only to detect no-op content updates.
"""

from sqlalchemy import (
    Column, String, Integer, BigInteger, DateTime, ForeignKey, Index, Text,
    Boolean, JSON, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from app.database import Base


ROOT_FOLDER_NAME = "Root"
ITEM_TYPES = ("text", "secret", "api_key", "code", "file")


class User(Base):
    """User model for authentication and account key storage"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Hex-encoded 32-byte account key. Losing it makes all content unrecoverable.
    encryption_key = Column(String(64), nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow,
                        onupdate=datetime.utcnow, nullable=False)

    # Relationships
    folders = relationship("Folder", back_populates="user", cascade="all, delete-orphan")
    items = relationship("Item", back_populates="user", cascade="all, delete-orphan")


class Folder(Base):
    """
    Folder model.

    Folders form one tree per user rooted at the "Root" folder (parent_id NULL).
    A folder can only be created under a parent that already exists, so the
    graph stays acyclic by construction.
    """
    __tablename__ = "folders"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    parent_id = Column(Integer, ForeignKey("folders.id", ondelete="CASCADE"),
                       nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow,
                        onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="folders")
    parent = relationship("Folder", remote_side=[id], back_populates="children")
    children = relationship("Folder", back_populates="parent", cascade="all, delete-orphan")
    items = relationship("Item", back_populates="folder", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("name", "parent_id", "user_id", name="uq_folder_sibling_name"),
    )

    @property
    def is_root(self) -> bool:
        return self.name == ROOT_FOLDER_NAME and self.parent_id is None


class Item(Base):
    """
    Item model for typed vault entries.

    encrypted_content is NULL only for unencrypted file items.
    """
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False, index=True)
    encrypted_content = Column(Text, nullable=True)
    content_fingerprint = Column(String(64), nullable=True)

    # File items only
    file_path = Column(String(500), nullable=True)
    file_size = Column(BigInteger, default=0, nullable=False)

    language = Column(String(50), nullable=True)
    tags = Column(JSON, default=list, nullable=False)

    folder_id = Column(Integer, ForeignKey("folders.id", ondelete="CASCADE"),
                       nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"),
                     nullable=False, index=True)

    # Frequency tracking
    access_count = Column(Integer, default=0, nullable=False)
    last_accessed = Column(DateTime(timezone=True), nullable=True)
    is_pinned = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow,
                        onupdate=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="items")
    folder = relationship("Folder", back_populates="items")
    versions = relationship("ItemVersion", back_populates="item",
                            cascade="all, delete-orphan",
                            order_by="ItemVersion.version_number.desc()")

    __table_args__ = (
        CheckConstraint(
            "type IN ('text', 'secret', 'api_key', 'code', 'file')",
            name="ck_item_type",
        ),
        Index("idx_items_access_count", "access_count"),
    )

    @property
    def folder_name(self):
        return self.folder.name if self.folder is not None else None


class ItemVersion(Base):
    """
    Immutable snapshot of an item's encrypted content.

    version_number is gapless and strictly increasing per item, starting at 1.
    Rows are only ever inserted; they disappear with their parent item.
    """
    __tablename__ = "item_versions"

    id = Column(Integer, primary_key=True, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="CASCADE"),
                     nullable=False, index=True)
    encrypted_content = Column(Text, nullable=True)
    version_number = Column(Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    # Relationships
    item = relationship("Item", back_populates="versions")

    __table_args__ = (
        UniqueConstraint("item_id", "version_number", name="uq_item_version_number"),
    )
