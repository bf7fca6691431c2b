"""
Storage Layer - per-user file storage

Provides the transactional file operations (list/get/put/delete) on top of
the embedded store. Index records and blob records live in the same store
and are always changed in the same transaction.
"""

from .user_files import UserFileStorage

__all__ = ["UserFileStorage"]
