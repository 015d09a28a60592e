"""Shared FastAPI dependencies: identity assertion and transfer throttling."""

from typing import Any

from beanie import PydanticObjectId
from bson.errors import InvalidId
from fastapi import Depends, Request

from app.core.config import get_settings
from app.core.exceptions import ForbiddenError, NotFoundError, UnauthorizedError
from app.core.logging import bind_user_id
from app.core.security import load_access_token
from app.models.user import User
from app.services import user_store
from app.services.rate_limit import check_transfer_rate

SESSION_COOKIE_NAME = "northbank_session"


def _presented_token(request: Request) -> str | None:
    auth = request.headers.get("Authorization") or ""
    if auth.startswith("Bearer "):
        return auth.split(" ", 1)[1].strip() or None
    return request.cookies.get(SESSION_COOKIE_NAME)


def _payload(request: Request, max_age_seconds: int) -> dict[str, Any]:
    token = _presented_token(request)
    if not token:
        raise UnauthorizedError("Missing or invalid token")
    payload = load_access_token(token, max_age_seconds)
    if not payload:
        raise UnauthorizedError("Invalid or expired token")
    return payload


def parse_object_id(value: str) -> PydanticObjectId:
    try:
        return PydanticObjectId(value)
    except (InvalidId, TypeError) as e:
        raise NotFoundError("User not found") from e


async def get_current_user(request: Request) -> User:
    """Dependency: verify the bearer token and return its User."""
    payload = _payload(request, get_settings().session_max_age_seconds)
    user_id = payload.get("user_id")
    if not user_id:
        raise UnauthorizedError("Invalid token payload")
    try:
        user = await user_store.load_user(parse_object_id(user_id))
    except NotFoundError as e:
        raise UnauthorizedError("User not found") from e
    if payload.get("session_version") != user.session_version:
        raise UnauthorizedError("Session invalidated")
    if user.status == "suspended":
        raise ForbiddenError("Account suspended")
    bind_user_id(str(user.id))
    return user


async def require_account_owner(user_id: str, user: User = Depends(get_current_user)) -> PydanticObjectId:
    """Dependency: the path's user_id must be the caller's own."""
    if str(user.id) != user_id:
        raise ForbiddenError("Access denied")
    return user.id


async def require_admin(request: Request) -> dict[str, Any]:
    """Dependency: require an admin token."""
    payload = _payload(request, get_settings().admin_session_max_age_seconds)
    if not payload.get("is_admin"):
        raise ForbiddenError("Admin access required")
    return payload


async def transfer_rate_limit(owner_id: PydanticObjectId = Depends(require_account_owner)) -> PydanticObjectId:
    """Dependency: owner check plus the per-user transfer throttle."""
    await check_transfer_rate(str(owner_id))
    return owner_id
