from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any

REFERRAL_CODE_LENGTH = 8


class Language(IntEnum):
    """Preferred account language; values are the persisted integer codes."""

    EN = 0
    FA = 1

    @classmethod
    def parse(cls, value: Any) -> "Language":
        """Map a wire value onto a known language, falling back to ``EN``."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.EN
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return cls.EN
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper(), cls.EN)
        return cls.EN


@dataclass(slots=True)
class Account:
    """Registered identity together with its hashed credential."""

    account_id: str
    email: str
    password_hash: str
    language: Language
    referral_code: str
    referrer_code: int
    created_at: datetime


def generate_referral_code(account_id: str) -> str:
    return account_id[:REFERRAL_CODE_LENGTH]
