"""Cache identity + serialization contract for user records.

Key:   "user:<decimal id>"
Value: UTF-8 JSON object
       {"id": 1, "username": "...", "email": "...",
        "created_at": "<ISO-8601>", "updated_at": "<ISO-8601>"}
"""

import json
from datetime import datetime

from src.uc_user.domain.models import User

USER_CACHE_KEY_PREFIX = "user:"


def user_cache_key(user_id: int) -> str:
    return f"{USER_CACHE_KEY_PREFIX}{user_id}"


def encode_user(user: User) -> bytes:
    payload = {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "created_at": user.created_at.isoformat(),
        "updated_at": user.updated_at.isoformat(),
    }
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def decode_user(payload: bytes) -> User:
    """Rebuild a User from a cache payload.

    Raises ValueError on malformed payloads (bad JSON, missing fields,
    wrong types) so the caller can treat the entry as a miss.
    """
    try:
        data = json.loads(payload)
        user_id = data["id"]
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise ValueError(f"id must be an integer, got {user_id!r}")
        return User(
            id=user_id,
            username=str(data["username"]),
            email=str(data["email"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )
    except (KeyError, TypeError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError(f"Malformed user cache payload: {exc}") from exc
