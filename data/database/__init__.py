"""
Database Layer - embedded key-value store

Provides:
- Store lifecycle and transactions (SQLite-backed buckets)
- Repository pattern for index, blob and account records
- Pydantic record models and the index codec
- Typed storage errors

Usage:
    from data.database import DatabaseConnection, IndexRepository

    db = DatabaseConnection(path, buckets=["user_files"])
    db.connect()

    with db.view() as tx:
        index = IndexRepository(tx).load_index(user_id)

    db.disconnect()
"""

from .connection import Bucket, DatabaseConnection, Transaction
from .errors import CorruptIndexError, FileStoreError, NotFoundError, StorageError
from .models import (
    FileDescriptor,
    TokenRecord,
    UserIndex,
    UserRecord,
    decode_index,
    encode_index,
    new_content_id,
)
from .repositories import AccountRepository, BlobRepository, IndexRepository

__all__ = [
    # Connection
    "DatabaseConnection",
    "Transaction",
    "Bucket",
    # Errors
    "FileStoreError",
    "NotFoundError",
    "CorruptIndexError",
    "StorageError",
    # Models
    "FileDescriptor",
    "UserIndex",
    "UserRecord",
    "TokenRecord",
    "encode_index",
    "decode_index",
    "new_content_id",
    # Repositories
    "IndexRepository",
    "BlobRepository",
    "AccountRepository",
]
