from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional


class WageCalculator(ABC):
    """Calculator interface (Strategy Pattern for teacher wages)."""

    @abstractmethod
    def calculated_amount(self, lessons_taught: int, wage_per_lesson: Optional[Decimal]) -> Decimal:
        raise NotImplementedError
