"""
Record Models

Pydantic models for every record persisted in the embedded store, plus the
codec used to read and write the per-user file index.

@.architecture
Incoming: data/database/repositories/*.py, data/storage/user_files.py, security/auth.py --- {raw record bytes from buckets, model instances to persist}
Processing: encode_index(), decode_index(), new_content_id(), UserRecord/TokenRecord validation --- {3 jobs: serialization, deserialization, identifier_generation}
Outgoing: data/database/repositories/*.py --- {UTF-8 JSON record bytes, UserIndex/FileDescriptor/UserRecord/TokenRecord instances}

Index record layout (JSON):
    {"files": {"<name>": {"id": "<uuid>", "contentType": "...", "contentLength": 3}}}
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import CorruptIndexError


def new_content_id() -> str:
    """
    Allocate a content identifier.

    Random 128-bit UUID4: never derived from file content, never reused.
    """
    return str(uuid.uuid4())


# =============================================================================
# File Index Models
# =============================================================================

class FileDescriptor(BaseModel):
    """Where a user's file lives in the blob bucket and how to serve it."""
    model_config = ConfigDict(populate_by_name=True)

    content_id: str = Field(..., alias="id")
    content_type: str = Field(default="", alias="contentType")
    content_length: int = Field(default=0, ge=0, alias="contentLength")


class UserIndex(BaseModel):
    """One user's file name -> descriptor mapping."""
    files: Dict[str, FileDescriptor] = Field(default_factory=dict)


def encode_index(index: UserIndex) -> bytes:
    """Serialize a user index to its stored form."""
    return index.model_dump_json(by_alias=True).encode("utf-8")


def decode_index(raw: bytes, user_id: Optional[str] = None) -> UserIndex:
    """
    Deserialize a stored user index.

    Raises:
        CorruptIndexError: If the record is not a valid index
    """
    try:
        return UserIndex.model_validate_json(raw)
    except (ValidationError, ValueError) as e:
        raise CorruptIndexError(user_id, reason=type(e).__name__) from e


# =============================================================================
# Account Models
# =============================================================================

class UserRecord(BaseModel):
    """Registered account, keyed by username."""
    id: str
    username: str
    password_hash: str


class TokenRecord(BaseModel):
    """Issued access token, keyed by the token itself."""
    token: str
    user_id: str
    created: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
