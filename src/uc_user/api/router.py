"""uc_user REST endpoints.

GET    /users              — page/page_size pagination (served from the store)
POST   /users              — create
GET    /users/{user_id}    — cache-aside read
PUT    /users/{user_id}    — partial update, invalidates the cache entry
DELETE /users/{user_id}    — delete, invalidates the cache entry

Request bodies are validated here; the repository assumes clean input.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Path, Query, Request, status

from src.uc_common.response import ApiResponse, success_response
from src.uc_user.application.cached_repository import CachedUserRepository
from src.uc_user.application.schemas import (
    CreateUserRequest,
    UpdateUserRequest,
    UserListResponse,
    UserResponse,
)

router = APIRouter(prefix="/users", tags=["users"])


def get_user_repository(request: Request) -> CachedUserRepository:
    """Repository opened in the app lifespan and parked on app.state."""
    return request.app.state.user_repository


# ids and row offsets are BIGINT binds
PG_BIGINT_MAX = 2**63 - 1
MAX_PAGE_SIZE = 100
MAX_PAGE = PG_BIGINT_MAX // MAX_PAGE_SIZE

Repo = Annotated[CachedUserRepository, Depends(get_user_repository)]
UserId = Annotated[int, Path(ge=1, le=PG_BIGINT_MAX)]


@router.get("", response_model=ApiResponse, summary="List users")
async def list_users(
    repo: Repo,
    page: int = Query(1, ge=1, le=MAX_PAGE),
    page_size: int = Query(20, ge=1, le=MAX_PAGE_SIZE),
) -> ApiResponse:
    offset = (page - 1) * page_size
    users = await repo.list_users(page_size, offset)
    total = await repo.count_users()
    result = UserListResponse.build(users, page, page_size, total)
    return success_response(result.model_dump())


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse,
    summary="Create user",
)
async def create_user(body: CreateUserRequest, repo: Repo) -> ApiResponse:
    user = await repo.create_user(body.username, str(body.email))
    await repo.incr_counter("users_created")
    return success_response(
        UserResponse.from_domain(user).model_dump(), "User created successfully"
    )


@router.get("/{user_id}", response_model=ApiResponse, summary="Get user")
async def get_user(user_id: UserId, repo: Repo) -> ApiResponse:
    user = await repo.get_user(user_id)
    return success_response(UserResponse.from_domain(user).model_dump())


@router.put("/{user_id}", response_model=ApiResponse, summary="Update user")
async def update_user(
    user_id: UserId, body: UpdateUserRequest, repo: Repo
) -> ApiResponse:
    username = body.username
    email = str(body.email) if body.email is not None else None
    if username is None or email is None:
        current = await repo.get_user(user_id)
        username = username if username is not None else current.username
        email = email if email is not None else current.email
    user = await repo.update_user(user_id, username, email)
    return success_response(
        UserResponse.from_domain(user).model_dump(), "User updated successfully"
    )


@router.delete("/{user_id}", response_model=ApiResponse, summary="Delete user")
async def delete_user(user_id: UserId, repo: Repo) -> ApiResponse:
    await repo.delete_user(user_id)
    await repo.incr_counter("users_deleted")
    return success_response(None, "User deleted successfully")
