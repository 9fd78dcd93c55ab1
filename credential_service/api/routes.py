"""HTTP route definitions for the credential service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..domain.contracts import LoginInput, RegisterInput
from ..domain.errors import (
    AlreadyExistsError,
    AuthError,
    InvalidArgumentError,
    InvalidCredentialsError,
)
from ..domain.service import AuthService
from .dependencies import require_bearer_token

router = APIRouter(prefix="/v1")

INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


class RegisterRequest(BaseModel):
    """Payload accepted when registering a new account."""

    email: str = ""
    password: str = ""
    language: Any = None
    referrer_code: int = Field(default=0, ge=INT32_MIN, le=INT32_MAX)


class RegisterResponse(BaseModel):
    """Identifiers and bearer token returned after a successful registration."""

    id: str
    referral_code: str
    token: str


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""


class LoginResponse(BaseModel):
    token: str


class WhoAmIResponse(BaseModel):
    """Identity asserted by a verified bearer token."""

    id: str
    email: str


def get_service(request: Request) -> AuthService:
    """Resolve the `AuthService` stored on the FastAPI application state."""
    service: AuthService = request.app.state.auth_service
    return service


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_service),
) -> RegisterResponse:
    """Create an account and return its identifiers with a signed token."""
    result = service.register(
        RegisterInput(
            email=payload.email,
            password=payload.password,
            language=payload.language,
            referrer_code=payload.referrer_code,
        )
    )
    return RegisterResponse(
        id=result.account_id,
        referral_code=result.referral_code,
        token=result.token,
    )


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    service: AuthService = Depends(get_service),
) -> LoginResponse:
    """Exchange valid credentials for a signed token."""
    result = service.login(LoginInput(email=payload.email, password=payload.password))
    return LoginResponse(token=result.token)


@router.get("/whoami", response_model=WhoAmIResponse)
def whoami(claims: dict[str, Any] = Depends(require_bearer_token)) -> WhoAmIResponse:
    """Echo the account identity carried by the caller's bearer token."""
    return WhoAmIResponse(id=claims["sub"], email=claims["email"])


def status_code_for(exc: AuthError) -> int:
    if isinstance(exc, InvalidArgumentError):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, InvalidCredentialsError):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, AlreadyExistsError):
        return status.HTTP_409_CONFLICT
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render an ``AuthError`` as a JSON error body with its mapped status."""
    status_code = status_code_for(exc)
    # Internal details stay in the logs.
    detail = "internal error" if status_code >= 500 else str(exc)
    return JSONResponse(status_code=status_code, content={"detail": detail, "code": exc.code})
