"""Registration, login and admin user management."""

from datetime import datetime
from typing import Any

from beanie import PydanticObjectId
from beanie.operators import Or

from app.core.audit import log_event
from app.core.config import get_settings
from app.core.exceptions import BadRequestError, ConflictError, ForbiddenError, UnauthorizedError
from app.core.logging import get_logger
from app.core.security import create_access_token, generate_salt, hash_password, verify_password, verify_pin
from app.models.user import User
from app.services import user_store
from app.services.accounts import provision_accounts
from app.services.external_accounts import serialize_external_account

log = get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


def _check_password(password: str) -> None:
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise BadRequestError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


async def register_user(name: str, email: str, username: str, password: str) -> User:
    name = (name or "").strip()
    email = (email or "").strip().lower()
    username = (username or "").strip()
    if not name or not username or "@" not in email:
        raise BadRequestError("Name, valid email and username are required")
    _check_password(password)
    existing = await User.find_one(Or(User.email == email, User.username == username))
    if existing:
        raise ConflictError("User already exists")
    salt = generate_salt()
    user = User(
        name=name,
        email=email,
        username=username,
        password_salt=salt,
        password_hash=hash_password(password, salt),
        accounts=await provision_accounts(),
    )
    await user.insert()
    log.info("user_created", user_id=str(user.id), username=user.username)
    return user


async def authenticate(password: str, email: str | None = None, username: str | None = None) -> User:
    if not (email or username) or not password:
        raise BadRequestError("Email/username and password are required")
    if email:
        user = await User.find_one(User.email == email.strip().lower())
    else:
        user = await User.find_one(User.username == username.strip())
    if not user or not verify_password(password, user.password_salt, user.password_hash):
        raise UnauthorizedError("Invalid credentials")
    if user.status == "suspended":
        raise ForbiddenError("Account suspended")
    user.last_login_at = datetime.utcnow()
    await user_store.save_user(user)
    log.info("user_login", user_id=str(user.id))
    return user


def user_token(user: User) -> str:
    return create_access_token({"user_id": str(user.id), "session_version": user.session_version})


def admin_token(pin: str) -> str:
    if not verify_pin(pin, get_settings().admin_pin):
        raise UnauthorizedError("Invalid PIN")
    log.info("admin_login")
    return create_access_token({"is_admin": True})


def serialize_user(user: User) -> dict[str, Any]:
    """The user without credentials or encrypted account numbers."""
    data = user.model_dump(exclude={"password_hash", "password_salt", "external_accounts", "revision_id"})
    data["id"] = str(user.id)
    data["external_accounts"] = [serialize_external_account(e) for e in user.external_accounts]
    return data


async def list_users() -> list[dict[str, Any]]:
    return [serialize_user(u) async for u in user_store.iter_users()]


async def toggle_suspend(user_id: PydanticObjectId) -> str:
    user = await user_store.load_user(user_id)
    user.status = "active" if user.status == "suspended" else "suspended"
    await user_store.save_user(user)
    await log_event("admin", "user_status_changed", str(user.id), metadata={"status": user.status})
    return user.status


async def reset_password(user_id: PydanticObjectId, new_password: str) -> None:
    """Set a new password and invalidate the user's outstanding tokens."""
    _check_password(new_password)
    user = await user_store.load_user(user_id)
    user.password_salt = generate_salt()
    user.password_hash = hash_password(new_password, user.password_salt)
    user.session_version += 1
    await user_store.save_user(user)
    await log_event("admin", "password_reset", str(user.id))
