"""Pydantic request/response schemas for uc_user.

All responses are wrapped in ApiResponse at the router layer.
"""

import math

from pydantic import BaseModel, EmailStr, Field

from src.uc_user.domain.models import User


class CreateUserRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


class UpdateUserRequest(BaseModel):
    """Partial update: omitted fields keep their current value."""

    username: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None


class UserResponse(BaseModel):
    id: int
    username: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            created_at=user.created_at.isoformat(),
            updated_at=user.updated_at.isoformat(),
        )


class Pagination(BaseModel):
    page: int
    page_size: int
    total_items: int
    total_pages: int


class UserListResponse(BaseModel):
    items: list[UserResponse]
    pagination: Pagination

    @classmethod
    def build(
        cls, users: list[User], page: int, page_size: int, total_items: int
    ) -> "UserListResponse":
        return cls(
            items=[UserResponse.from_domain(u) for u in users],
            pagination=Pagination(
                page=page,
                page_size=page_size,
                total_items=total_items,
                total_pages=math.ceil(total_items / page_size) if total_items else 0,
            ),
        )
