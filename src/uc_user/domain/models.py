"""Domain models for uc_user — pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class User:
    id: int
    username: str
    email: str
    created_at: datetime
    updated_at: datetime
