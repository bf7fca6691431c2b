"""
Cryptography Utilities - Security Layer

Provides hashing utilities for protecting account credentials:
password hashes (bcrypt) and access token digests.

@.architecture
Incoming: security/auth.py --- {str passwords, str access tokens, bcrypt cost factor}
Processing: hash_password(), verify_password(), hash_token() --- {2 jobs: hashing, verification}
Outgoing: security/auth.py --- {str password hashes, str token digests, bool verification results}
"""

import hashlib
import logging

logger = logging.getLogger(__name__)


class CryptoError(Exception):
    """Raised when cryptographic operations fail."""
    pass


class Hasher:
    """
    Secure hashing utilities for passwords and tokens.

    Features:
    - Password hashing with bcrypt
    - Token digests for storage
    """

    @staticmethod
    def hash_password(password: str, rounds: int = 12) -> str:
        """
        Hash password using bcrypt.

        Args:
            password: Password to hash
            rounds: Cost factor (default 12, range 4-31)

        Returns:
            Hashed password string

        Raises:
            CryptoError: If the password cannot be hashed
        """
        import bcrypt

        password_bytes = password.encode('utf-8')
        try:
            salt = bcrypt.gensalt(rounds=rounds)
            hashed = bcrypt.hashpw(password_bytes, salt)
        except ValueError as e:
            raise CryptoError(f"Failed to hash password: {e}") from e

        return hashed.decode('utf-8')

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """
        Verify password against hash (timing-attack resistant).

        Args:
            password: Password to verify
            hashed: Hashed password

        Returns:
            True if password matches, False otherwise
        """
        import bcrypt

        password_bytes = password.encode('utf-8')
        hashed_bytes = hashed.encode('utf-8')

        try:
            return bcrypt.checkpw(password_bytes, hashed_bytes)
        except ValueError as e:
            logger.error(f"Password verification failed: {e}")
            return False

    @staticmethod
    def hash_token(token: str) -> str:
        """
        Hash access token for storage (one-way hash).

        Args:
            token: Access token to hash

        Returns:
            Hex-encoded SHA-256 hash
        """
        return hashlib.sha256(token.encode('utf-8')).hexdigest()


# Convenience functions

def hash_password(password: str, rounds: int = 12) -> str:
    """Hash password using bcrypt."""
    return Hasher.hash_password(password, rounds)


def verify_password(password: str, hashed: str) -> bool:
    """Verify password against bcrypt hash."""
    return Hasher.verify_password(password, hashed)


def hash_token(token: str) -> str:
    """Hash access token for storage."""
    return Hasher.hash_token(token)
