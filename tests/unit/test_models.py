"""
Unit Tests: Record Models

Tests for the user index codec and identifier generation.
"""

import json
import uuid

import pytest

from data.database.errors import CorruptIndexError
from data.database.models import (
    FileDescriptor,
    TokenRecord,
    UserIndex,
    decode_index,
    encode_index,
    new_content_id,
)


# =============================================================================
# Index Codec Tests
# =============================================================================

class TestIndexCodec:
    """Test encoding and decoding of user indexes."""

    @pytest.fixture
    def sample_index(self):
        """Index with two files."""
        return UserIndex(files={
            "notes.txt": FileDescriptor(
                content_id="0b8f4a52-2f8c-4b0e-9d55-6f3c1a2e7d10",
                content_type="text/plain; charset=utf-8",
                content_length=42,
            ),
            "photos/cat.png": FileDescriptor(
                content_id="5d3c9a8e-1111-4c2d-8e9f-000000000001",
                content_type="image/png",
                content_length=0,
            ),
        })

    @pytest.mark.unit
    def test_record_layout(self, sample_index):
        """Test the stored JSON field names."""
        record = json.loads(encode_index(sample_index))

        assert record == {
            "files": {
                "notes.txt": {
                    "id": "0b8f4a52-2f8c-4b0e-9d55-6f3c1a2e7d10",
                    "contentType": "text/plain; charset=utf-8",
                    "contentLength": 42,
                },
                "photos/cat.png": {
                    "id": "5d3c9a8e-1111-4c2d-8e9f-000000000001",
                    "contentType": "image/png",
                    "contentLength": 0,
                },
            }
        }

    @pytest.mark.unit
    def test_round_trip(self, sample_index):
        """Test that every descriptor field survives encode/decode."""
        assert decode_index(encode_index(sample_index)) == sample_index

    @pytest.mark.unit
    def test_unicode_names(self):
        """Test that non-ASCII file names round-trip."""
        index = UserIndex(files={
            "résumé ✓.pdf": FileDescriptor(content_id="x", content_type="application/pdf", content_length=1)
        })

        assert list(decode_index(encode_index(index)).files) == ["résumé ✓.pdf"]

    @pytest.mark.unit
    @pytest.mark.parametrize("raw", [
        b"",
        b"not json",
        b"[]",
        b'{"files": []}',
        b'{"files": {"a": {"contentType": "text/plain"}}}',
        b'{"files": {"a": {"id": "x", "contentLength": -1}}}',
        b"\xff\xfe",
    ])
    def test_corrupt_records(self, raw):
        """Test that malformed records raise CorruptIndexError."""
        with pytest.raises(CorruptIndexError):
            decode_index(raw)

    @pytest.mark.unit
    def test_corrupt_error_names_user(self):
        """Test that the error carries the user id."""
        with pytest.raises(CorruptIndexError) as exc_info:
            decode_index(b"{", user_id="user-1")

        assert exc_info.value.user_id == "user-1"
        assert "user-1" in str(exc_info.value)


# =============================================================================
# Identifier Tests
# =============================================================================

class TestIdentifiers:
    """Test content identifier allocation."""

    @pytest.mark.unit
    def test_content_id_is_uuid4(self):
        """Test that content ids are random UUIDs."""
        content_id = new_content_id()

        assert uuid.UUID(content_id).version == 4

    @pytest.mark.unit
    def test_content_ids_are_unique(self):
        """Test that content ids do not repeat."""
        ids = {new_content_id() for _ in range(1000)}

        assert len(ids) == 1000

    @pytest.mark.unit
    def test_token_record_timestamp(self):
        """Test that token records are stamped in UTC."""
        record = TokenRecord(token="digest", user_id="user-1")

        assert record.created.tzinfo is not None
