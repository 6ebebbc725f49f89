from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from batchguard.api.dependencies import get_loaders
from batchguard.core.errors import NotFoundAppError, ValidationAppError
from batchguard.core.rate_limit import enforce_rate_limit
from batchguard.loaders.factory import RequestLoaders
from batchguard.schemas.directory import User

router = APIRouter(tags=["Users"], dependencies=[Depends(enforce_rate_limit)])

MAX_IDS_PER_REQUEST = 100


def parse_ids(raw: str) -> list[str]:
    """Split a comma-separated id list, dropping blanks.

    Examples:
        >>> parse_ids("user_1, user_2,,")
        ['user_1', 'user_2']
    """
    return [part.strip() for part in raw.split(",") if part.strip()]


@router.get("/users", response_model=List[User | None])
async def list_users_by_ids(
    ids: str = Query(..., description="Comma-separated user ids"),
    loaders: RequestLoaders = Depends(get_loaders),
) -> list[User | None]:
    """Resolve several users in one batch.

    The response keeps the order of ``ids``; unknown ids yield ``null``.
    """
    user_ids = parse_ids(ids)
    if not user_ids:
        raise ValidationAppError(code="ids_required", message="Provide at least one user id")
    if len(user_ids) > MAX_IDS_PER_REQUEST:
        raise ValidationAppError(
            code="too_many_ids",
            message=f"At most {MAX_IDS_PER_REQUEST} ids per request",
            details={"expected": MAX_IDS_PER_REQUEST, "actual": len(user_ids)},
        )

    results = await loaders.users.load_many(user_ids)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


@router.get("/users/{user_id}", response_model=User)
async def get_user(
    user_id: str,
    loaders: RequestLoaders = Depends(get_loaders),
) -> User:
    user = await loaders.users.load(user_id)
    if user is None:
        raise NotFoundAppError(
            code="user_not_found",
            message="User not found",
            details={"resource": "user", "resource_id": user_id},
        )
    return user
