from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ..core.constants import UNKNOWN_NAME


@dataclass(frozen=True)
class UserIdentity:
    """Display identity of a person (student or teacher)."""

    user_id: Optional[int]
    full_name: str
    email: str = ""
    phone: str = ""

    @classmethod
    def placeholder(cls) -> "UserIdentity":
        return cls(user_id=None, full_name=UNKNOWN_NAME)

    def as_dict(self) -> dict:
        return {"userId": self.user_id, "fullName": self.full_name, "email": self.email, "phone": self.phone}


@dataclass(frozen=True)
class Teacher:
    teacher_id: int
    user_id: int
    wage_per_lesson: Optional[Decimal]
    full_name: str = UNKNOWN_NAME
    email: str = ""
