"""
Blob Repository - raw file content keyed by content identifier

@.architecture
Incoming: data/storage/user_files.py --- {active Transaction, content_id, file bytes}
Processing: get_blob(), put_blob(), delete_blob() --- {3 jobs: content_read, content_write, content_removal}
Outgoing: data/database/connection.py (file_blobs bucket) --- {raw bytes keyed by content_id}
"""

from ..connection import Transaction
from ..errors import StorageError


class BlobRepository:
    """Stores file bytes in the same transaction as the index update."""

    BUCKET = "file_blobs"

    def __init__(self, tx: Transaction):
        self._bucket = tx.bucket(self.BUCKET)

    def get_blob(self, content_id: str) -> bytes:
        """
        Return the exact bytes stored under content_id.

        Raises:
            StorageError: If an index entry points at a missing blob
        """
        data = self._bucket.get(content_id)
        if data is None:
            raise StorageError(f"Blob missing for content id {content_id}")
        return data

    def put_blob(self, content_id: str, data: bytes) -> None:
        self._bucket.put(content_id, data)

    def delete_blob(self, content_id: str) -> None:
        self._bucket.delete(content_id)
