"""
ReadLater Backend — Content Record & API Schemas
=================================================

What:  Pydantic models for the persisted content record and the API contract.
Why:   One model is both the on-disk JSON shape and the value services pass
       around, so a record that loads is guaranteed to have every field.
How:   ArticleContent is written with model_dump_json() and read with
       model_validate_json(). Timestamps serialize as ISO-8601.

On-disk record (one <article_id>.json per article):
    {
      "id": "...", "user_id": "...", "title": "...", "url": "...",
      "content": "<plaintext | SealedBlob>",
      "summary": "<plaintext | SealedBlob | empty>",
      "tags": [...], "metadata": {...},
      "created_at": "...", "updated_at": "...",
      "is_encrypted": false
    }
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Stored Record
# ══════════════════════════════════════════════════════════════════════════


class ArticleContent(BaseModel):
    """
    What:  The persisted unit for one article's captured content.

    `is_encrypted` tells readers whether `content` and `summary` hold
    plaintext or SealedBlob strings. An empty summary is never encrypted.
    """
    id: str = Field(default="", description="Article identifier")
    user_id: str = Field(default="", description="Owning user identifier")
    title: str = Field(default="", description="Article title (never encrypted)")
    url: str = Field(default="", description="Source URL (never encrypted)")
    content: str = Field(default="", description="Article body, plaintext or SealedBlob")
    summary: str = Field(default="", description="Optional summary, plaintext or SealedBlob")
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = Field(default=None, description="First save (UTC)")
    updated_at: Optional[datetime] = Field(default=None, description="Latest save (UTC)")
    is_encrypted: bool = Field(default=False)


class StorageStats(BaseModel):
    """Aggregate usage for one user's namespace. All zeros if it does not exist."""
    total_records: int = 0
    total_bytes: int = 0
    encrypted_records: int = 0


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class ArticleContentCreate(BaseModel):
    """
    What:  Body of PUT .../content.
    Why:   Identifiers come from the URL and the encryption flag is decided
           by the presence of X-Master-Key, so the client cannot set them.
    """
    title: str = ""
    url: str = ""
    content: str = ""
    summary: str = ""
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, str] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    def to_record(self) -> ArticleContent:
        return ArticleContent(**self.model_dump())


class RotateKeyRequest(BaseModel):
    old_key: str = Field(description="Current base64 master key")
    new_key: str = Field(description="Replacement base64 master key")


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class SaveResponse(BaseModel):
    message: str = Field(default="Content saved successfully")
    article_id: str
    is_encrypted: bool


class RotateKeyResponse(BaseModel):
    rotated: int = Field(description="Number of records re-encrypted")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "decryption_failed",
            "message": "Content could not be decrypted with the supplied key",
            "request_id": "1f0c2a9e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    storage: str = Field(description="Storage root status: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")


class UserKeyResponse(BaseModel):
    key: str = Field(description="New base64 master key; the caller must store it")
