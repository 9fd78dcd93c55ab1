"""bcrypt password hashing helpers."""

from __future__ import annotations

import bcrypt


class PasswordHashingError(RuntimeError):
    """Raised when bcrypt refuses to hash a password."""


def hash_password(password: str, rounds: int = 12) -> str:
    """Return a salted bcrypt hash of ``password``.

    The salt is generated per call and embedded in the returned string, so
    verification needs nothing besides the hash itself.
    """
    try:
        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    except ValueError as exc:
        raise PasswordHashingError(str(exc)) from exc
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check ``password`` against a stored bcrypt hash in constant time.

    A malformed hash, or a password bcrypt cannot process, counts as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
