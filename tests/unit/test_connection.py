"""
Unit Tests: Embedded Store

Tests for the SQLite-backed bucket store: lifecycle, transactions,
rollback and snapshot reads.
"""

import threading

import pytest

from data.database.connection import DatabaseConnection
from data.database.errors import StorageError


# =============================================================================
# Lifecycle Tests
# =============================================================================

class TestLifecycle:
    """Test opening and closing a store."""

    @pytest.mark.unit
    def test_connect_creates_file(self, temp_dir):
        """Test that connect creates the store file and its parent directory."""
        path = temp_dir / "nested" / "store.db"
        db = DatabaseConnection(path, buckets=["alpha"])

        db.connect()
        try:
            assert path.exists()
            assert db.is_connected()
        finally:
            db.disconnect()

        assert not db.is_connected()

    @pytest.mark.unit
    def test_operations_require_connect(self, temp_db_path):
        """Test that transactions fail before connect."""
        db = DatabaseConnection(temp_db_path, buckets=["alpha"])

        with pytest.raises(StorageError):
            with db.view():
                pass

    @pytest.mark.unit
    def test_connect_twice_is_harmless(self, test_db):
        """Test that a second connect keeps the open store."""
        test_db.connect()

        assert test_db.is_connected()

    @pytest.mark.unit
    def test_invalid_bucket_name(self, temp_db_path):
        """Test that bucket names are restricted to identifiers."""
        with pytest.raises(ValueError):
            DatabaseConnection(temp_db_path, buckets=["bad-name; DROP TABLE"])

    @pytest.mark.unit
    def test_data_survives_reopen(self, temp_db_path):
        """Test that committed data is durable across reopen."""
        db = DatabaseConnection(temp_db_path, buckets=["alpha"])
        db.connect()
        with db.update() as tx:
            tx.bucket("alpha").put("k", b"v")
        db.disconnect()

        db = DatabaseConnection(temp_db_path, buckets=["alpha"])
        db.connect()
        try:
            with db.view() as tx:
                assert tx.bucket("alpha").get("k") == b"v"
        finally:
            db.disconnect()


# =============================================================================
# Bucket Tests
# =============================================================================

class TestBuckets:
    """Test key-value access inside transactions."""

    @pytest.mark.unit
    def test_put_and_get(self, test_db):
        """Test writing then reading a value."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"\x00\x01binary")

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("key") == b"\x00\x01binary"
            assert tx.bucket("alpha").get("missing") is None

    @pytest.mark.unit
    def test_buckets_are_separate(self, test_db):
        """Test that the same key in two buckets holds two values."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"a")
            tx.bucket("beta").put("key", b"b")

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("key") == b"a"
            assert tx.bucket("beta").get("key") == b"b"

    @pytest.mark.unit
    def test_put_overwrites(self, test_db):
        """Test that put replaces an existing value."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"old")
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"new")

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("key") == b"new"
            assert tx.bucket("alpha").count() == 1

    @pytest.mark.unit
    def test_delete_is_idempotent(self, test_db):
        """Test that deleting a missing key is not an error."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"value")
            tx.bucket("alpha").delete("key")
            tx.bucket("alpha").delete("key")
            tx.bucket("alpha").delete("never-existed")

        with test_db.view() as tx:
            assert "key" not in tx.bucket("alpha")

    @pytest.mark.unit
    def test_keys_are_ordered(self, test_db):
        """Test that keys come back in ascending byte order."""
        with test_db.update() as tx:
            for key in ["charlie", "alpha", "bravo"]:
                tx.bucket("alpha").put(key, b"x")

        with test_db.view() as tx:
            assert tx.bucket("alpha").keys() == [b"alpha", b"bravo", b"charlie"]

    @pytest.mark.unit
    def test_unknown_bucket(self, test_db):
        """Test that an unknown bucket raises StorageError."""
        with test_db.view() as tx:
            with pytest.raises(StorageError):
                tx.bucket("gamma")

    @pytest.mark.unit
    def test_ensure_buckets_adds_bucket(self, test_db):
        """Test creating a bucket on an open store."""
        test_db.ensure_buckets(["gamma"])

        with test_db.update() as tx:
            tx.bucket("gamma").put("key", b"value")

        with test_db.view() as tx:
            assert tx.bucket("gamma").get("key") == b"value"


# =============================================================================
# Transaction Tests
# =============================================================================

class TestTransactions:
    """Test commit, rollback and isolation."""

    @pytest.mark.unit
    def test_view_is_read_only(self, test_db):
        """Test that writes through a read-only transaction fail."""
        with test_db.view() as tx:
            with pytest.raises(StorageError):
                tx.bucket("alpha").put("key", b"value")
            with pytest.raises(StorageError):
                tx.bucket("alpha").delete("key")

    @pytest.mark.unit
    def test_rollback_on_exception(self, test_db):
        """Test that an exception discards every write in the transaction."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("kept", b"1")

        with pytest.raises(RuntimeError):
            with test_db.update() as tx:
                tx.bucket("alpha").put("kept", b"2")
                tx.bucket("beta").put("dropped", b"x")
                raise RuntimeError("boom")

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("kept") == b"1"
            assert tx.bucket("beta").get("dropped") is None

    @pytest.mark.unit
    def test_transaction_unusable_after_exit(self, test_db):
        """Test that a transaction object cannot be used after its block."""
        with test_db.view() as tx:
            bucket = tx.bucket("alpha")

        with pytest.raises(StorageError):
            bucket.get("key")

    @pytest.mark.unit
    def test_snapshot_isolation(self, test_db):
        """Test that a reader keeps its snapshot while a writer commits."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"before")

        errors = []

        def writer():
            try:
                with test_db.update() as tx:
                    tx.bucket("alpha").put("key", b"after")
            except StorageError as e:
                errors.append(e)

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("key") == b"before"

            thread = threading.Thread(target=writer)
            thread.start()
            thread.join(timeout=10)

            # Writer committed, reader still sees its snapshot
            assert not errors
            assert tx.bucket("alpha").get("key") == b"before"

        with test_db.view() as tx:
            assert tx.bucket("alpha").get("key") == b"after"

    @pytest.mark.unit
    def test_pool_timeout(self, temp_db_path):
        """Test that an exhausted pool raises StorageError instead of blocking."""
        db = DatabaseConnection(temp_db_path, buckets=["alpha"], max_size=1, timeout=0.1)
        db.connect()
        try:
            with db.view():
                with pytest.raises(StorageError):
                    with db.view():
                        pass
        finally:
            db.disconnect()


# =============================================================================
# Health Check Tests
# =============================================================================

class TestHealthCheck:
    """Test store health reporting."""

    @pytest.mark.unit
    def test_healthy_store(self, test_db):
        """Test health check on an open store."""
        with test_db.update() as tx:
            tx.bucket("alpha").put("key", b"value")

        result = test_db.health_check()

        assert result["healthy"] is True
        assert result["counts"] == {"alpha": 1, "beta": 0}
        assert result["pool"]["max_size"] == 4

    @pytest.mark.unit
    def test_closed_store(self, temp_db_path):
        """Test health check on a store that was never opened."""
        db = DatabaseConnection(temp_db_path, buckets=["alpha"])

        result = db.health_check()

        assert result["healthy"] is False
        assert result["error"] == "Store not connected"
