"""Credential store contract plus in-memory and Postgres adapters."""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from threading import Lock

import psycopg
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, Language, generate_referral_code
from .domain.errors import EmailConflict, ReferralCodeConflict, StoreFailure

logger = logging.getLogger(__name__)

EMAIL_CONSTRAINT = "accounts_email_key"
REFERRAL_CODE_CONSTRAINT = "accounts_referral_code_key"


class AccountRepository(ABC):
    """Durable collection of accounts keyed by email."""

    @abstractmethod
    def create_account(
        self,
        email: str,
        password_hash: str,
        language: Language,
        referrer_code: int,
    ) -> Account:
        """Persist a new account and return it with its generated fields.

        Raises ``EmailConflict`` when the email is taken, ``ReferralCodeConflict``
        when the derived referral code collides, and ``StoreFailure`` otherwise.
        """

    @abstractmethod
    def get_account_by_email(self, email: str) -> Account | None:
        """Return the account stored under ``email`` or ``None`` when absent."""


class InMemoryAccountRepository(AccountRepository):
    """Process-local store; uniqueness check and insert happen under one lock."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}
        self._referral_codes: set[str] = set()
        self._lock = Lock()

    def create_account(
        self,
        email: str,
        password_hash: str,
        language: Language,
        referrer_code: int,
    ) -> Account:
        account_id = str(uuid.uuid4())
        account = Account(
            account_id=account_id,
            email=email,
            password_hash=password_hash,
            language=language,
            referral_code=generate_referral_code(account_id),
            referrer_code=referrer_code,
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if email in self._accounts:
                raise EmailConflict(email)
            if account.referral_code in self._referral_codes:
                raise ReferralCodeConflict(account.referral_code)
            self._accounts[email] = account
            self._referral_codes.add(account.referral_code)
        return account

    def get_account_by_email(self, email: str) -> Account | None:
        with self._lock:
            return self._accounts.get(email)


class PostgresAccountRepository(AccountRepository):
    """Postgres-backed account persistence on top of a psycopg connection pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def create_account(
        self,
        email: str,
        password_hash: str,
        language: Language,
        referrer_code: int,
    ) -> Account:
        """Check the email is free, then insert the account in the same transaction.

        The pre-check and the insert are not atomic: a concurrent registration
        can pass the check too, in which case the table's unique constraint
        fires and is reported as a conflict rather than a failure.
        """
        account_id = str(uuid.uuid4())
        referral_code = generate_referral_code(account_id)
        now = datetime.now(timezone.utc)
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        "SELECT EXISTS(SELECT 1 FROM accounts WHERE email = %s)",
                        (email,),
                    )
                    if cur.fetchone()[0]:
                        raise EmailConflict(email)

                    cur.execute(
                        """
                        INSERT INTO accounts (id, email, password_hash, language, referral_code, referrer_code, created_at)
                        VALUES (%s, %s, %s, %s, %s, %s, %s)
                        RETURNING id, email, password_hash, language, referral_code, referrer_code, created_at
                        """,
                        (
                            account_id,
                            email,
                            password_hash,
                            int(language),
                            referral_code,
                            referrer_code,
                            now,
                        ),
                    )
                    record = cur.fetchone()
                conn.commit()
        except psycopg.errors.UniqueViolation as exc:
            constraint = exc.diag.constraint_name
            logger.warning("unique constraint %s rejected account insert", constraint)
            if constraint == REFERRAL_CODE_CONSTRAINT:
                raise ReferralCodeConflict(referral_code) from exc
            raise EmailConflict(email) from exc
        except psycopg.Error as exc:
            raise StoreFailure(f"error inserting account: {exc}") from exc

        return self._map_record(record)

    def get_account_by_email(self, email: str) -> Account | None:
        """Exact-match lookup; the email is compared as stored."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        """
                        SELECT id, email, password_hash, language, referral_code, referrer_code, created_at
                        FROM accounts
                        WHERE email = %s
                        """,
                        (email,),
                    )
                    row = cur.fetchone()
        except psycopg.Error as exc:
            raise StoreFailure(f"error selecting account by email: {exc}") from exc
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            email=row[1],
            password_hash=row[2],
            language=Language.parse(row[3]),
            referral_code=row[4],
            referrer_code=row[5] or 0,
            created_at=row[6],
        )
