"""
User File Storage - transactional per-user file operations

@.architecture
Incoming: api/v1/endpoints/files.py, app.py (startup_event) --- {user_id, filename, content_type, file bytes}
Processing: list_files(), get_file(), put_file(), delete_file(), get_storage_stats() --- {5 jobs: index_resolution, content_allocation, atomic_update, atomic_removal, statistics_collection}
Outgoing: data/database/repositories/index.py, data/database/repositories/blobs.py --- {one view/update transaction per operation, UserIndex and blob mutations}

Maps user-scoped file operations onto two buckets of one embedded store:
- user_files: user_id -> UserIndex (file name -> FileDescriptor)
- file_blobs: content_id -> raw bytes

Each operation runs in exactly one transaction. Index and blob changes
commit together or not at all, and nothing is cached between calls.

File names are opaque keys: no normalisation, no hierarchy.
"""

from typing import Any, Dict, List, Tuple

from monitoring import get_logger

from ..database.connection import DatabaseConnection
from ..database.errors import NotFoundError
from ..database.models import FileDescriptor, UserIndex, new_content_id
from ..database.repositories.blobs import BlobRepository
from ..database.repositories.index import IndexRepository

logger = get_logger(__name__)


class UserFileStorage:
    """
    Per-user file store with referential consistency between the index and
    the blob bucket.

    Every content_id in an index has a live blob, and every blob is owned by
    exactly one (user, file name) entry.
    """

    BUCKETS = (IndexRepository.BUCKET, BlobRepository.BUCKET)

    def __init__(self, db: DatabaseConnection):
        """
        Initialize user file storage.

        Args:
            db: Open store; the index and blob buckets are created if missing
        """
        self.db = db
        self.db.ensure_buckets(self.BUCKETS)

    # =========================================================================
    # FILE OPERATIONS
    # =========================================================================

    def list_files(self, user_id: str) -> List[str]:
        """
        List a user's file names.

        Returns:
            Sorted file names; empty for a user who never stored anything

        Raises:
            CorruptIndexError: If the user's index cannot be decoded
            StorageError: If the store fails
        """
        with self.db.view() as tx:
            index = IndexRepository(tx).load_index(user_id)

        if index is None:
            return []
        return sorted(index.files)

    def get_file(self, user_id: str, filename: str) -> Tuple[bytes, str]:
        """
        Read a file.

        Returns:
            (content bytes, content type)

        Raises:
            NotFoundError: If the user has no such file (or no index at all)
            CorruptIndexError: If the user's index cannot be decoded
            StorageError: If the store fails
        """
        with self.db.view() as tx:
            index = IndexRepository(tx).load_index(user_id)
            descriptor = index.files.get(filename) if index is not None else None
            if descriptor is None:
                raise NotFoundError(filename)

            data = BlobRepository(tx).get_blob(descriptor.content_id)
            # detach from anything the engine may reuse
            content = bytes(data)

        logger.debug(f"Read file '{filename}' ({len(content)} bytes)", user_id=user_id)
        return content, descriptor.content_type

    def put_file(
        self,
        user_id: str,
        filename: str,
        content_type: str,
        content: bytes,
    ) -> FileDescriptor:
        """
        Create or overwrite a file.

        An existing name keeps its content_id and its blob is overwritten in
        place; a new name gets a freshly allocated content_id. The content
        length always comes from the bytes supplied.

        Returns:
            The descriptor now stored in the index

        Raises:
            CorruptIndexError: If the user's index cannot be decoded
            StorageError: If the store fails (nothing is committed)
        """
        content = bytes(content)

        with self.db.update() as tx:
            index_repo = IndexRepository(tx)
            index = index_repo.load_index(user_id) or UserIndex()

            descriptor = index.files.get(filename)
            if descriptor is not None:
                descriptor = descriptor.model_copy(update={
                    "content_type": content_type,
                    "content_length": len(content),
                })
            else:
                descriptor = FileDescriptor(
                    content_id=new_content_id(),
                    content_type=content_type,
                    content_length=len(content),
                )
            index.files[filename] = descriptor

            index_repo.save_index(user_id, index)
            BlobRepository(tx).put_blob(descriptor.content_id, content)

        logger.debug(
            f"Stored file '{filename}' ({len(content)} bytes)",
            user_id=user_id,
            content_id=descriptor.content_id,
        )
        return descriptor

    def delete_file(self, user_id: str, filename: str) -> None:
        """
        Delete a file and its blob.

        A user with no index at all is a no-op, not an error.

        Raises:
            NotFoundError: If the user has an index without this file
            CorruptIndexError: If the user's index cannot be decoded
            StorageError: If the store fails (nothing is committed)
        """
        with self.db.update() as tx:
            index_repo = IndexRepository(tx)
            index = index_repo.load_index(user_id)
            if index is None:
                return

            descriptor = index.files.pop(filename, None)
            if descriptor is None:
                raise NotFoundError(filename)

            index_repo.save_index(user_id, index)
            BlobRepository(tx).delete_blob(descriptor.content_id)

        logger.debug(f"Deleted file '{filename}'", user_id=user_id, content_id=descriptor.content_id)

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_storage_stats(self) -> Dict[str, Any]:
        """
        Get storage statistics.

        Returns:
            Dict with user index and blob counts
        """
        with self.db.view() as tx:
            return {
                "users": tx.bucket(IndexRepository.BUCKET).count(),
                "blobs": tx.bucket(BlobRepository.BUCKET).count(),
            }
