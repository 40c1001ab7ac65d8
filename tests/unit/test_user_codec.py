"""Tests for the user cache key + payload contract."""

import json
from datetime import UTC, datetime

import pytest

from src.uc_user.domain.codec import decode_user, encode_user, user_cache_key
from src.uc_user.domain.models import User


def _make_user(**kwargs) -> User:
    defaults = dict(
        id=7,
        username="alice",
        email="alice@example.com",
        created_at=datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC),
        updated_at=datetime(2026, 1, 3, 3, 4, 5, tzinfo=UTC),
    )
    defaults.update(kwargs)
    return User(**defaults)


class TestCacheKey:
    def test_prefix_plus_decimal_id(self) -> None:
        assert user_cache_key(42) == "user:42"

    def test_distinct_ids_distinct_keys(self) -> None:
        assert user_cache_key(1) != user_cache_key(11)


class TestEncode:
    def test_payload_field_set(self) -> None:
        data = json.loads(encode_user(_make_user()))
        assert set(data) == {"id", "username", "email", "created_at", "updated_at"}
        assert data["id"] == 7
        assert data["created_at"] == "2026-01-02T03:04:05+00:00"

    def test_decode_restores_equal_record(self) -> None:
        user = _make_user()
        assert decode_user(encode_user(user)) == user


class TestDecodeRejectsMalformed:
    @pytest.mark.parametrize(
        "payload",
        [
            b"not json",
            b"{}",
            b'{"id": "7", "username": "a", "email": "e", '
            b'"created_at": "2026-01-01T00:00:00+00:00", "updated_at": "2026-01-01T00:00:00+00:00"}',
            b'{"id": 7, "username": "a", "email": "e", "created_at": 5, "updated_at": 5}',
            b'{"id": 7, "username": "a", "email": "e", '
            b'"created_at": "yesterday", "updated_at": "today"}',
            b"\xff\xfe",
            b"[1, 2, 3]",
        ],
    )
    def test_raises_value_error(self, payload: bytes) -> None:
        with pytest.raises(ValueError):
            decode_user(payload)
