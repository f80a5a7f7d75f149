"""Account endpoints (/signup, /login), mounted on both services."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from knowledgeflow.api.dependencies import UsersDep
from knowledgeflow.services.user_directory import (
    EmailTakenError,
    UsernameTakenError,
    UserValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["accounts"])


# --- Request / Response schemas -------------------------------------------


class SignupIn(BaseModel):
    # Defaults let the handler answer with its own message instead of a
    # generic schema error when a field is left out.
    username: str = ""
    email: str = ""
    password: str = ""


class LoginIn(BaseModel):
    username: str = ""
    password: str = ""


class MessageOut(BaseModel):
    message: str


class LoginOut(BaseModel):
    message: str
    user: dict[str, Any]


# --- POST /signup ---------------------------------------------------------


@router.post("/signup", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
async def signup(payload: SignupIn, users: UsersDep) -> MessageOut:
    try:
        await users.signup(payload.username, payload.email, payload.password)
    except UserValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail={"error": str(e)}
        ) from None
    except UsernameTakenError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Username is already taken"},
        ) from None
    except EmailTakenError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Email is already registered"},
        ) from None

    return MessageOut(message="User registered successfully!")


# --- POST /login ----------------------------------------------------------


@router.post("/login", response_model=LoginOut)
async def login(payload: LoginIn, users: UsersDep) -> LoginOut:
    username = payload.username.strip()
    if not username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Missing username or password"},
        )

    user = await users.authenticate(username, payload.password)
    if user is None:
        logger.warning("Login failed  username=%s", username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Invalid username or password"},
        )

    logger.info("Login succeeded  username=%s", username)
    return LoginOut(message="Login successful", user=user.public_dict())
