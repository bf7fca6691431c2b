"""
Database Repositories - record access inside an open transaction

Provides repository implementations for:
- User file indexes (user_files bucket)
- File content blobs (file_blobs bucket)
- Accounts and access tokens (users, tokens buckets)

Repositories never open transactions themselves; callers pass the
transaction so several repositories can change state atomically.
"""

from .blobs import BlobRepository
from .index import IndexRepository
from .users import AccountRepository

__all__ = [
    "IndexRepository",
    "BlobRepository",
    "AccountRepository",
]
