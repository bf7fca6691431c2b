"""
Authentication - Security Layer

@.architecture
Incoming: security/crypto.py, api/dependencies.py, api/v1/endpoints/auth.py, app.py (startup_event) --- {Hasher, DatabaseConnection, username/password pairs, X-Session / Bearer token}
Processing: create_user(), login(), validate_token(), get_statistics() --- {4 jobs: registration, authentication, token_management, statistics}
Outgoing: data/database/repositories/users.py, api/dependencies.py --- {UserRecord/TokenRecord persisted in users/tokens buckets, str access token, str user_id}

Provides account registration, password login and access token validation,
backed by the embedded store (users and tokens buckets). Tokens do not
expire; only their SHA-256 digest is stored.
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from data.database.connection import DatabaseConnection
from data.database.models import TokenRecord, UserRecord
from data.database.repositories.users import AccountRepository

from .crypto import CryptoError, Hasher

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


class RegistrationError(Exception):
    """Raised when a new account is rejected."""
    pass


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class InvalidTokenError(AuthenticationError):
    """Raised when token is invalid."""
    pass


@dataclass
class AuthConfig:
    """Authentication configuration."""

    # Account rules
    username_min_length: int = 3
    username_max_length: int = 20
    password_min_length: int = 8

    # Password hashing cost factor
    bcrypt_rounds: int = 12


class AuthenticationManager:
    """
    Manages user accounts and access tokens.

    Features:
    - Registration with username/password rules
    - Password login issuing opaque access tokens
    - Token validation to a user id
    """

    BUCKETS = (AccountRepository.USERS_BUCKET, AccountRepository.TOKENS_BUCKET)

    def __init__(self, db: DatabaseConnection, config: Optional[AuthConfig] = None):
        """
        Initialize authentication manager.

        Args:
            db: Open store; the users and tokens buckets are created if missing
            config: Authentication configuration
        """
        self.db = db
        self.config = config or AuthConfig()
        self._hasher = Hasher()
        self.db.ensure_buckets(self.BUCKETS)

    # ==================== Registration ====================

    def _validate_credentials(self, username: str, password: str) -> None:
        cfg = self.config

        if not cfg.username_min_length <= len(username) <= cfg.username_max_length:
            raise RegistrationError(
                f"username must be {cfg.username_min_length}-{cfg.username_max_length} characters"
            )
        if not (username.isascii() and username.isalnum()):
            raise RegistrationError("username must contain only letters and digits")

        if len(password) < cfg.password_min_length:
            raise RegistrationError(
                f"password must be at least {cfg.password_min_length} characters"
            )
        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise RegistrationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")

    def create_user(self, username: str, password: str) -> UserRecord:
        """
        Register a new account.

        Args:
            username: 3-20 ASCII letters and digits (configurable)
            password: Plain password (hashed with bcrypt before storage)

        Returns:
            The stored user record

        Raises:
            RegistrationError: If the credentials break the rules or the name is taken
            StorageError: If the store fails
        """
        self._validate_credentials(username, password)

        # Hash before taking the write lock; bcrypt is slow on purpose
        try:
            password_hash = self._hasher.hash_password(password, rounds=self.config.bcrypt_rounds)
        except CryptoError as e:
            raise RegistrationError("invalid password") from e

        user = UserRecord(id=str(uuid.uuid4()), username=username, password_hash=password_hash)

        with self.db.update() as tx:
            accounts = AccountRepository(tx)
            if accounts.has_user(username):
                raise RegistrationError("username already taken")
            accounts.add_user(user)

        logger.info(f"Registered user '{username}' ({user.id})")
        return user

    # ==================== Login ====================

    def login(self, username: str, password: str) -> str:
        """
        Exchange credentials for an access token.

        Args:
            username: Account name
            password: Plain password

        Returns:
            New access token (shown once; only its digest is stored)

        Raises:
            AuthenticationError: If the user is unknown or the password is wrong
            StorageError: If the store fails
        """
        with self.db.view() as tx:
            user = AccountRepository(tx).get_user(username)

        if user is None or not self._hasher.verify_password(password, user.password_hash):
            logger.warning(f"Failed login for '{username}'")
            raise AuthenticationError("authentication failed")

        token = str(uuid.uuid4())
        record = TokenRecord(token=self._hasher.hash_token(token), user_id=user.id)

        with self.db.update() as tx:
            AccountRepository(tx).add_token(record)

        logger.info(f"Issued token for user '{user.id}'")
        return token

    # ==================== Token Validation ====================

    def validate_token(self, token: Optional[str]) -> str:
        """
        Resolve an access token to its user id.

        Args:
            token: Token from the request (may be missing)

        Returns:
            The owning user id

        Raises:
            InvalidTokenError: If the token is empty, unknown or unreadable
            StorageError: If the store fails
        """
        if not token:
            raise InvalidTokenError("missing token")

        with self.db.view() as tx:
            record = AccountRepository(tx).get_token(self._hasher.hash_token(token))

        if record is None:
            raise InvalidTokenError("invalid token")

        logger.debug(f"Validated token for user '{record.user_id}'")
        return record.user_id

    # ==================== Statistics ====================

    def get_statistics(self) -> Dict[str, Any]:
        """
        Get authentication statistics.

        Returns:
            Dict with user and token counts
        """
        with self.db.view() as tx:
            return {
                "users": tx.bucket(AccountRepository.USERS_BUCKET).count(),
                "tokens": tx.bucket(AccountRepository.TOKENS_BUCKET).count(),
            }
