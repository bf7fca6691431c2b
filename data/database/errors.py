"""
Storage Errors

Typed results raised by the storage core. Callers (the API layer) decide how
each one maps to a response; the storage core never logs and swallows them.

@.architecture
Incoming: data/database/connection.py, data/database/models.py, data/storage/user_files.py --- {sqlite3 failures, codec failures, missing index entries}
Processing: exception construction --- {1 job: error_typing}
Outgoing: api/middleware/error_handler.py, api/v1/endpoints/files.py --- {FileStoreError subclasses}
"""

from typing import Optional


class FileStoreError(Exception):
    """Base class for all storage core errors."""
    pass


class NotFoundError(FileStoreError):
    """
    Raised when a named file does not exist for a user.

    Raised identically whether the user has no index at all or the index
    has no such entry, so callers cannot probe for user existence.
    """

    def __init__(self, filename: str):
        super().__init__("file not found")
        self.filename = filename


class CorruptIndexError(FileStoreError):
    """Raised when a stored user index record fails to deserialize."""

    def __init__(self, user_id: Optional[str] = None, reason: str = ""):
        message = "corrupt file index"
        if user_id is not None:
            message = f"{message} for user {user_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.user_id = user_id


class StorageError(FileStoreError):
    """Raised when the underlying store fails (I/O, locking, commit)."""
    pass
