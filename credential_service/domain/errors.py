"""Error types raised by the credential store and the authentication service.

Store errors describe storage outcomes and never leave the domain layer; the
service translates them into the caller-facing ``AuthError`` kinds.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every error surfaced by :class:`AuthService`."""

    code = "internal"


class InvalidArgumentError(AuthError, ValueError):
    """A required request field is missing."""

    code = "invalid_argument"


class AlreadyExistsError(AuthError):
    """The email (or generated referral code) is already registered."""

    code = "already_exists"


class InvalidCredentialsError(AuthError):
    """Unknown email or wrong password; the two cases are deliberately merged."""

    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("invalid email or password")


class InternalError(AuthError):
    """Hashing, signing, or unclassified storage failure."""

    code = "internal"


class StoreError(Exception):
    """Base class for credential store failures."""


class AccountConflict(StoreError):
    """A uniqueness constraint on the accounts store rejected the insert."""


class EmailConflict(AccountConflict):
    def __init__(self, email: str) -> None:
        super().__init__(f"email already registered: {email}")
        self.email = email


class ReferralCodeConflict(AccountConflict):
    def __init__(self, referral_code: str) -> None:
        super().__init__(f"referral code already in use: {referral_code}")
        self.referral_code = referral_code


class StoreFailure(StoreError):
    """The storage backend failed for a reason other than a uniqueness conflict."""
