"""Aggregate store: load and save whole user documents."""

from datetime import datetime
from typing import AsyncIterator

from beanie import PydanticObjectId
from beanie.exceptions import DocumentNotFound
from pymongo.errors import AutoReconnect, ConnectionFailure, ExecutionTimeout, ServerSelectionTimeoutError

from app.core.exceptions import ConflictError, NotFoundError, StorageUnavailableError
from app.core.logging import get_logger
from app.models.ledger import ACCOUNT_TYPES
from app.models.user import User

log = get_logger(__name__)

_TRANSIENT_ERRORS = (AutoReconnect, ConnectionFailure, ExecutionTimeout, ServerSelectionTimeoutError)


async def load_user(user_id: PydanticObjectId) -> User:
    try:
        user = await User.get(user_id)
    except _TRANSIENT_ERRORS as e:
        raise StorageUnavailableError() from e
    if not user:
        raise NotFoundError("User not found")
    return user


async def load_user_by_account_number(account_type: str, account_number: str) -> User:
    if account_type not in ACCOUNT_TYPES:
        raise NotFoundError("Account not found")
    try:
        user = await User.find_one({f"accounts.{account_type}.account_number": account_number})
    except _TRANSIENT_ERRORS as e:
        raise StorageUnavailableError() from e
    if not user:
        raise NotFoundError("Recipient account not found")
    return user


async def account_number_in_use(account_number: str) -> bool:
    query = {"$or": [{f"accounts.{t}.account_number": account_number} for t in ACCOUNT_TYPES]}
    try:
        return await User.find_one(query) is not None
    except _TRANSIENT_ERRORS as e:
        raise StorageUnavailableError() from e


async def save_user(user: User) -> None:
    """
    Replace the stored document only if nobody saved it since it was loaded.
    Raises ConflictError when the stored version moved on.
    """
    expected = user.version
    # Documents written before versioning have no field; they load as version 0.
    version_filter = {"$in": [0, None]} if expected == 0 else expected
    user.version = expected + 1
    user.updated_at = datetime.utcnow()
    try:
        result = await User.find_one({"_id": user.id, "version": version_filter}).replace_one(user)
    except DocumentNotFound:
        result = None
    except _TRANSIENT_ERRORS as e:
        user.version = expected
        raise StorageUnavailableError() from e
    if result is None or result.matched_count == 0:
        user.version = expected
        log.warning("user_save_conflict", user_id=str(user.id), expected_version=expected)
        raise ConflictError("User was modified concurrently", details={"user_id": str(user.id)})


async def iter_users() -> AsyncIterator[User]:
    try:
        async for user in User.find_all():
            yield user
    except _TRANSIENT_ERRORS as e:
        raise StorageUnavailableError() from e
