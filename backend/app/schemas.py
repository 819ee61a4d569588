"""
Pydantic Schemas
Request/Response models for API validation

Encryption note: the server cannot validate encrypted item contents.
encrypted_content is an opaque base64 blob produced client-side with the
account key; only structural properties are validated here.
"""

from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum


# ════════════════════════════════════════════════════════════
# User / Auth Schemas
# ════════════════════════════════════════════════════════════

class UserBase(BaseModel):
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=100)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserLogin(UserBase):
    password: str

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserResponse(UserBase):
    id: int

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """
    Returned on register and login.
    encryption_key: hex account key, for the client to cache locally.
    """
    message: str
    user: UserResponse
    token: str
    encryption_key: str


class TokenVerify(BaseModel):
    token: str = Field(..., min_length=1)


class TokenVerifyResponse(BaseModel):
    valid: bool
    user: UserResponse
    encryption_key: str


# ════════════════════════════════════════════════════════════
# Folder Schemas
# ════════════════════════════════════════════════════════════

class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    parent_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Folder name cannot be empty or whitespace")
        return v.strip()


class FolderUpdate(FolderCreate):
    pass


class FolderResponse(BaseModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ════════════════════════════════════════════════════════════
# Item Schemas
# ════════════════════════════════════════════════════════════

class ItemType(str, Enum):
    TEXT = "text"
    SECRET = "secret"
    API_KEY = "api_key"
    CODE = "code"
    FILE = "file"


class ItemCreate(BaseModel):
    """
    Create an item.
    encrypted_content: base64 AES-GCM blob of the item body
    content_fingerprint: optional HMAC-SHA256 of the plaintext under the account key
    """
    name: str = Field(..., min_length=1, max_length=255)
    type: ItemType
    encrypted_content: Optional[str] = Field(None, min_length=1)
    content_fingerprint: Optional[str] = Field(None, min_length=64, max_length=64)
    folder_id: int
    language: Optional[str] = Field(None, max_length=50)
    tags: List[str] = Field(default_factory=list)


class ItemUpdate(BaseModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    encrypted_content: Optional[str] = Field(None, min_length=1)
    content_fingerprint: Optional[str] = Field(None, min_length=64, max_length=64)
    folder_id: Optional[int] = None
    language: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None


class ItemResponse(BaseModel):
    id: int
    name: str
    type: ItemType
    encrypted_content: Optional[str] = None
    content_fingerprint: Optional[str] = None
    file_size: int = 0
    language: Optional[str] = None
    tags: List[str] = []
    folder_id: int
    folder_name: Optional[str] = None
    access_count: int
    last_accessed: Optional[datetime] = None
    is_pinned: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class PinResponse(BaseModel):
    pinned: bool


class ItemVersionResponse(BaseModel):
    id: int
    item_id: int
    encrypted_content: Optional[str] = None
    version_number: int
    created_at: datetime

    class Config:
        from_attributes = True


# ════════════════════════════════════════════════════════════
# Backup Schemas
# ════════════════════════════════════════════════════════════

class BackupEnvelope(BaseModel):
    """Wire format of an exported bundle"""
    version: str
    encrypted: bool
    data: str


class BackupImportRequest(BaseModel):
    # Kept loose so the codec can tell malformed bundles apart itself
    backup_data: Dict[str, Any]
    clear_existing: bool = False


class ImportCounts(BaseModel):
    folders: int
    items: int


class BackupImportResponse(BaseModel):
    message: str
    imported: ImportCounts


class MessageResponse(BaseModel):
    message: str
