"""
Unit Tests: Authentication

Tests for registration rules, password login and token validation.
"""

import pytest

from data.database.repositories.users import AccountRepository
from security.auth import (
    AuthConfig,
    AuthenticationError,
    AuthenticationManager,
    InvalidTokenError,
    RegistrationError,
)
from security.crypto import Hasher, hash_token


# =============================================================================
# Registration Tests
# =============================================================================

class TestRegistration:
    """Test account creation."""

    @pytest.mark.unit
    def test_create_user(self, auth_manager):
        """Test registering a valid user."""
        user = auth_manager.create_user("alice", "password123")

        assert user.username == "alice"
        assert user.id
        assert user.password_hash != "password123"
        assert Hasher.verify_password("password123", user.password_hash)

    @pytest.mark.unit
    def test_user_ids_are_unique(self, auth_manager):
        """Test that each account gets its own id."""
        a = auth_manager.create_user("alice", "password123")
        b = auth_manager.create_user("bob", "password123")

        assert a.id != b.id

    @pytest.mark.unit
    def test_duplicate_username(self, auth_manager):
        """Test that a taken username is rejected."""
        auth_manager.create_user("alice", "password123")

        with pytest.raises(RegistrationError, match="username already taken"):
            auth_manager.create_user("alice", "different456")

    @pytest.mark.unit
    @pytest.mark.parametrize("username", [
        "ab",
        "a" * 21,
        "with space",
        "dash-name",
        "ünïcode",
        "",
    ])
    def test_invalid_usernames(self, auth_manager, username):
        """Test username length and character rules."""
        with pytest.raises(RegistrationError):
            auth_manager.create_user(username, "password123")

    @pytest.mark.unit
    @pytest.mark.parametrize("username", ["abc", "a" * 20, "User42"])
    def test_valid_usernames(self, auth_manager, username):
        """Test usernames on the boundaries."""
        assert auth_manager.create_user(username, "password123").username == username

    @pytest.mark.unit
    @pytest.mark.parametrize("password", ["", "short", "1234567", "x" * 73])
    def test_invalid_passwords(self, auth_manager, password):
        """Test password length rules."""
        with pytest.raises(RegistrationError):
            auth_manager.create_user("alice", password)

    @pytest.mark.unit
    def test_custom_rules(self, auth_db):
        """Test that the rules come from AuthConfig."""
        manager = AuthenticationManager(
            auth_db,
            AuthConfig(username_min_length=5, password_min_length=12, bcrypt_rounds=4)
        )

        with pytest.raises(RegistrationError):
            manager.create_user("abcd", "password123456")
        with pytest.raises(RegistrationError):
            manager.create_user("abcde", "password123")

        assert manager.create_user("abcde", "password123456").username == "abcde"


# =============================================================================
# Login Tests
# =============================================================================

class TestLogin:
    """Test password login."""

    @pytest.mark.unit
    def test_login_issues_token(self, auth_manager):
        """Test that login returns a token resolving to the user."""
        user = auth_manager.create_user("alice", "password123")

        token = auth_manager.login("alice", "password123")

        assert token
        assert auth_manager.validate_token(token) == user.id

    @pytest.mark.unit
    def test_tokens_are_distinct(self, auth_manager):
        """Test that every login issues a new token and all stay valid."""
        user = auth_manager.create_user("alice", "password123")

        first = auth_manager.login("alice", "password123")
        second = auth_manager.login("alice", "password123")

        assert first != second
        assert auth_manager.validate_token(first) == user.id
        assert auth_manager.validate_token(second) == user.id

    @pytest.mark.unit
    def test_wrong_password(self, auth_manager):
        """Test that a wrong password fails."""
        auth_manager.create_user("alice", "password123")

        with pytest.raises(AuthenticationError, match="authentication failed"):
            auth_manager.login("alice", "password124")

    @pytest.mark.unit
    def test_unknown_user(self, auth_manager):
        """Test that an unknown user fails the same way."""
        with pytest.raises(AuthenticationError, match="authentication failed"):
            auth_manager.login("nobody", "password123")

    @pytest.mark.unit
    def test_token_stored_as_digest(self, auth_manager, auth_db):
        """Test that only the token digest is persisted."""
        auth_manager.create_user("alice", "password123")
        token = auth_manager.login("alice", "password123")

        with auth_db.view() as tx:
            tokens = tx.bucket(AccountRepository.TOKENS_BUCKET)
            assert tokens.get(token) is None
            assert tokens.get(hash_token(token)) is not None


# =============================================================================
# Token Validation Tests
# =============================================================================

class TestTokenValidation:
    """Test token lookup."""

    @pytest.mark.unit
    @pytest.mark.parametrize("token", [None, "", "not-a-real-token"])
    def test_invalid_tokens(self, auth_manager, token):
        """Test that missing and unknown tokens are rejected."""
        with pytest.raises(InvalidTokenError):
            auth_manager.validate_token(token)

    @pytest.mark.unit
    def test_unreadable_token_record(self, auth_manager, auth_db):
        """Test that a damaged token record is treated as invalid."""
        with auth_db.update() as tx:
            tx.bucket(AccountRepository.TOKENS_BUCKET).put(hash_token("damaged"), b"{oops")

        with pytest.raises(InvalidTokenError):
            auth_manager.validate_token("damaged")

    @pytest.mark.unit
    def test_statistics(self, auth_manager):
        """Test user and token counts."""
        auth_manager.create_user("alice", "password123")
        auth_manager.login("alice", "password123")

        assert auth_manager.get_statistics() == {"users": 1, "tokens": 1}


# =============================================================================
# Hasher Tests
# =============================================================================

class TestHasher:
    """Test password and token hashing."""

    @pytest.mark.unit
    def test_password_hash_is_salted(self):
        """Test that the same password hashes differently each time."""
        first = Hasher.hash_password("password123", rounds=4)
        second = Hasher.hash_password("password123", rounds=4)

        assert first != second
        assert Hasher.verify_password("password123", first)
        assert Hasher.verify_password("password123", second)

    @pytest.mark.unit
    def test_verify_against_malformed_hash(self):
        """Test that a malformed stored hash never verifies."""
        assert Hasher.verify_password("password123", "not-a-bcrypt-hash") is False

    @pytest.mark.unit
    def test_token_digest(self):
        """Test that token digests are stable SHA-256 hex strings."""
        digest = hash_token("abc")

        assert digest == hash_token("abc")
        assert len(digest) == 64
        assert digest != hash_token("abd")
