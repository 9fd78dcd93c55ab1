"""Authentication service orchestrating validation, hashing, persistence, and token issuance."""

from __future__ import annotations

import logging
import secrets

from .account import Account, Language
from .contracts import LoginInput, LoginResult, RegisterInput, RegisterResult
from .errors import (
    AccountConflict,
    AlreadyExistsError,
    InternalError,
    InvalidArgumentError,
    InvalidCredentialsError,
    StoreFailure,
)
from ..config import Settings, get_settings
from ..repository import AccountRepository
from ..security.passwords import PasswordHashingError, hash_password, verify_password
from ..security.tokens import TokenSigningError, issue_access_token

logger = logging.getLogger(__name__)


class AuthService:
    """Register and login workflows backed by an account repository.

    The service keeps no state between calls, so one instance can serve
    concurrent requests.
    """

    def __init__(self, repository: AccountRepository, settings: Settings | None = None) -> None:
        """Store dependencies used to orchestrate persistence and token issuance."""
        self._repository = repository
        self._settings = settings or get_settings()
        # Unknown emails are checked against this so login timing does not reveal them.
        self._dummy_hash = hash_password(secrets.token_urlsafe(16), self._settings.bcrypt_rounds)

    @property
    def settings(self) -> Settings:
        return self._settings

    def register(self, payload: RegisterInput) -> RegisterResult:
        """Create an account and return its id, referral code, and a fresh token."""
        _require_credentials(payload.email, payload.password)

        try:
            password_hash = hash_password(payload.password, self._settings.bcrypt_rounds)
        except PasswordHashingError as exc:
            logger.exception("failed to hash password")
            raise InternalError("failed to hash password") from exc

        try:
            account = self._repository.create_account(
                payload.email,
                password_hash,
                Language.parse(payload.language),
                payload.referrer_code,
            )
        except AccountConflict as exc:
            raise AlreadyExistsError(str(exc)) from exc
        except StoreFailure as exc:
            logger.exception("account store failed during registration")
            raise InternalError("failed to create account") from exc

        token = self._issue_token(account)
        logger.info("account registered account_id=%s", account.account_id)
        return RegisterResult(
            account_id=account.account_id,
            referral_code=account.referral_code,
            token=token,
        )

    def login(self, payload: LoginInput) -> LoginResult:
        """Verify credentials and return a fresh token.

        An unknown email and a wrong password raise the same
        ``InvalidCredentialsError`` so callers cannot probe for accounts.
        """
        _require_credentials(payload.email, payload.password)

        try:
            account = self._repository.get_account_by_email(payload.email)
        except StoreFailure as exc:
            logger.exception("account store failed during login")
            raise InternalError("failed to load account") from exc

        password_hash = self._dummy_hash if account is None else account.password_hash
        matched = verify_password(payload.password, password_hash)
        if account is None or not matched:
            logger.warning("login rejected: invalid credentials")
            raise InvalidCredentialsError()

        token = self._issue_token(account)
        logger.info("login succeeded account_id=%s", account.account_id)
        return LoginResult(token=token)

    def _issue_token(self, account: Account) -> str:
        try:
            token, _ = issue_access_token(
                subject=account.account_id,
                email=account.email,
                secret=self._settings.jwt_secret,
                ttl_seconds=self._settings.jwt_ttl_seconds,
            )
        except TokenSigningError as exc:
            logger.exception("failed to sign token")
            raise InternalError("failed to sign token") from exc
        return token


def _require_credentials(email: str, password: str) -> None:
    if not email or not password:
        raise InvalidArgumentError("email and password are required")
