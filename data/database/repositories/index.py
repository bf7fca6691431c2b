"""
Index Repository - per-user file index access

@.architecture
Incoming: data/storage/user_files.py --- {active Transaction, user_id, UserIndex to persist}
Processing: load_index(), save_index() --- {2 jobs: index_loading, index_persistence}
Outgoing: data/database/connection.py (user_files bucket) --- {encoded UserIndex records keyed by user_id}

One record per user, keyed by user identifier. A missing record is not an
error (the user simply has no files yet); a record that fails to decode is,
since treating it as missing would orphan the blobs it references.
"""

from typing import Optional

from ..connection import Transaction
from ..models import UserIndex, decode_index, encode_index


class IndexRepository:
    """Reads and writes user indexes inside the caller's transaction."""

    BUCKET = "user_files"

    def __init__(self, tx: Transaction):
        self._bucket = tx.bucket(self.BUCKET)

    def load_index(self, user_id: str) -> Optional[UserIndex]:
        """
        Load a user's index.

        Returns:
            The index, or None if the user has never stored a file

        Raises:
            CorruptIndexError: If the stored record cannot be decoded
        """
        raw = self._bucket.get(user_id)
        if raw is None:
            return None
        return decode_index(raw, user_id=user_id)

    def save_index(self, user_id: str, index: UserIndex) -> None:
        """Overwrite a user's index record."""
        self._bucket.put(user_id, encode_index(index))
