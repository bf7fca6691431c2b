"""
Account Repository - registered users and issued access tokens

@.architecture
Incoming: security/auth.py --- {active Transaction, username, UserRecord, TokenRecord}
Processing: get_user(), add_user(), get_token(), add_token() --- {4 jobs: user_lookup, user_persistence, token_lookup, token_persistence}
Outgoing: data/database/connection.py (users, tokens buckets) --- {JSON records keyed by username / token}
"""

import logging
from typing import Optional

from pydantic import ValidationError

from ..connection import Transaction
from ..errors import StorageError
from ..models import TokenRecord, UserRecord

logger = logging.getLogger(__name__)


class AccountRepository:
    """User and token records for the authentication layer."""

    USERS_BUCKET = "users"
    TOKENS_BUCKET = "tokens"

    def __init__(self, tx: Transaction):
        self._users = tx.bucket(self.USERS_BUCKET)
        self._tokens = tx.bucket(self.TOKENS_BUCKET)

    # =========================================================================
    # USERS
    # =========================================================================

    def get_user(self, username: str) -> Optional[UserRecord]:
        raw = self._users.get(username)
        if raw is None:
            return None
        try:
            return UserRecord.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Unreadable user record for '{username}'") from e

    def has_user(self, username: str) -> bool:
        return username in self._users

    def add_user(self, user: UserRecord) -> None:
        self._users.put(user.username, user.model_dump_json().encode("utf-8"))

    # =========================================================================
    # TOKENS
    # =========================================================================

    def get_token(self, token: str) -> Optional[TokenRecord]:
        """Return the token record, or None if unknown or unreadable."""
        raw = self._tokens.get(token)
        if raw is None:
            return None
        try:
            return TokenRecord.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding unreadable token record")
            return None

    def add_token(self, record: TokenRecord) -> None:
        self._tokens.put(record.token, record.model_dump_json().encode("utf-8"))
