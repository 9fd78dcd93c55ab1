"""Domain-level request and result contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class RegisterInput:
    """Raw inputs for creating an account; ``language`` is normalised by the service."""

    email: str
    password: str
    language: Any = None
    referrer_code: int = 0


@dataclass(slots=True)
class LoginInput:
    """Credentials presented when authenticating an existing account."""

    email: str
    password: str


@dataclass(slots=True)
class RegisterResult:
    account_id: str
    referral_code: str
    token: str


@dataclass(slots=True)
class LoginResult:
    token: str
