"""
User registration and login endpoints.
"""

import structlog
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from api.auth import create_access_token, hash_password, verify_password
from api.database import UserDatabaseService
from api.dependencies import get_user_service
from api.exceptions import AuthenticationError, ValidationError
from api.models import (
    MAX_PASSWORD_BYTES, ErrorResponse, LoginResponse, RegisterResponse, User,
    UserLoginRequest, UserRegisterRequest
)

PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes"

logger = structlog.get_logger(__name__)

router = APIRouter(
    tags=["Users"],
    responses={400: {"model": ErrorResponse, "description": "Bad request"}},
)


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=RegisterResponse)
async def register(
    payload: UserRegisterRequest,
    users: UserDatabaseService = Depends(get_user_service)
):
    """Register a new user with **name**, **email** and **password**."""
    if payload.missing_required():
        raise ValidationError("All fields are required")
    if payload.password_too_long():
        raise ValidationError(PASSWORD_TOO_LONG)

    try:
        user = User(
            name=payload.name,
            email=payload.email,
            password=hash_password(payload.password)
        )
    except PydanticValidationError:
        raise ValidationError("Invalid email address")

    await users.create_user(user)

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": f"{user.name} successfully registered"}
    )


@router.post("/login", status_code=status.HTTP_201_CREATED, response_model=LoginResponse)
async def login(
    payload: UserLoginRequest,
    users: UserDatabaseService = Depends(get_user_service)
):
    """Log in with **email** and **password** and receive an access token."""
    if payload.missing_required():
        raise ValidationError("All fields are required")
    if payload.password_too_long():
        raise ValidationError(PASSWORD_TOO_LONG)

    user_doc = await users.get_user_by_email(payload.email)
    if not user_doc:
        logger.warning("Login for unknown email", email=payload.email)
        raise AuthenticationError("User not found")

    if not verify_password(payload.password, user_doc["password"]):
        logger.warning("Login with wrong password", email=payload.email)
        raise AuthenticationError("Wrong Password")

    token = create_access_token(
        user_id=str(user_doc["_id"]),
        email=user_doc["email"],
        name=user_doc.get("name")
    )
    logger.info("User logged in", user_id=str(user_doc["_id"]))

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={"message": "User LoggedIn", "token": token}
    )
