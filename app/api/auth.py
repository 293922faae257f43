"""JSON identity endpoints (/auth/register, /auth/login).

Both return { accessToken, user: { id, email, name } }.  The access
token's ``sub`` is the user's UUID, which is what the organization
endpoints and the tenant guard key memberships on.
"""

from __future__ import annotations

import logging
import re
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from app.api.dependencies import get_user_repo
from app.models.user import User
from app.repos.user_repo import DuplicateEmailError, UserRepo
from app.services import auth_service, token_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
PASSWORD_MIN_LENGTH = 8


class LoginIn(BaseModel):
    email: str
    password: str


class RegisterIn(BaseModel):
    name: str
    email: str
    password: str


class UserOut(BaseModel):
    id: str
    email: str
    name: str


class AuthResponse(BaseModel):
    accessToken: str
    user: UserOut


def _auth_response(user: User) -> AuthResponse:
    access_token = token_service.create_access_token(
        sub=str(user.id),
        roles=list(user.roles) or ["user"],
    )
    return AuthResponse(
        accessToken=access_token,
        user=UserOut(id=str(user.id), email=user.email, name=user.name),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    payload: LoginIn,
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> AuthResponse:
    email = payload.email.lower().strip()

    user = await auth_service.authenticate_user(users, email, payload.password)
    if user is None:
        logger.warning("Login failed  email=%s", email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    logger.info("Login succeeded  user_id=%s", user.id)
    return _auth_response(user)


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    payload: RegisterIn,
    users: Annotated[UserRepo, Depends(get_user_repo)],
) -> AuthResponse:
    email = payload.email.lower().strip()
    name = payload.name.strip()

    if not _EMAIL_RE.match(email):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid email address",
        )
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Name is required",
        )
    if len(payload.password) < PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {PASSWORD_MIN_LENGTH} characters",
        )

    if await users.get_by_email(email) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    user = User.new(
        email=email,
        password_hash=auth_service.hash_password(payload.password),
        name=name,
    )
    try:
        await users.add(user)
    except DuplicateEmailError:
        # Concurrent registration with the same email won the insert
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        ) from None

    logger.info("User registered  user_id=%s", user.id)
    return _auth_response(user)
