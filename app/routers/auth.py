from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from app.core.config import get_settings
from app.deps import SESSION_COOKIE_NAME, get_current_user
from app.models.user import User
from app.services import users as user_service

router = APIRouter()


class RegisterRequest(BaseModel):
    name: str
    email: str
    username: str
    password: str


class LoginRequest(BaseModel):
    email: str | None = None
    username: str | None = None
    password: str


class AdminPinRequest(BaseModel):
    pin: str


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        max_age=get_settings().session_max_age_seconds,
        httponly=True,
        secure=get_settings().env == "production",
        samesite="lax",
        path="/",
    )


@router.post("/register")
async def auth_register(body: RegisterRequest, response: Response):
    """Create a user with checking and savings accounts; returns a bearer token."""
    user = await user_service.register_user(body.name, body.email, body.username, body.password)
    token = user_service.user_token(user)
    _set_session_cookie(response, token)
    return {"user": user_service.serialize_user(user), "token": token}


@router.post("/login")
async def auth_login(body: LoginRequest, response: Response):
    """Login by email or username."""
    user = await user_service.authenticate(body.password, email=body.email, username=body.username)
    token = user_service.user_token(user)
    _set_session_cookie(response, token)
    return {"user": user_service.serialize_user(user), "token": token}


@router.post("/admin")
async def auth_admin(body: AdminPinRequest):
    """Exchange the admin PIN for a short-lived admin token."""
    return {"token": user_service.admin_token(body.pin)}


@router.get("/me")
async def auth_me(user: User = Depends(get_current_user)):
    return user_service.serialize_user(user)
