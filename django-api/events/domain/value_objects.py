"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Self
from uuid import UUID

CENT = Decimal("0.01")


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ModalityId:
    """Unique identifier for a Modality."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class BatchId:
    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class CouponId:
    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(str(value)))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Non-negative BRL amount, always held at two decimal places (half-up)."""

    amount: Decimal

    def __post_init__(self) -> None:
        amount = Decimal(self.amount).quantize(CENT, rounding=ROUND_HALF_UP)
        if amount < 0:
            raise ValueError("Money amount cannot be negative")
        object.__setattr__(self, "amount", amount)

    @classmethod
    def zero(cls) -> Self:
        return cls(Decimal("0"))

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def minus(self, other: "Money") -> "Money":
        """Subtract, flooring at zero."""
        return Money(max(self.amount - other.amount, Decimal("0")))

    def times(self, quantity: int) -> "Money":
        return Money(self.amount * quantity)

    def percent(self, rate: Decimal) -> "Money":
        return Money(self.amount * Decimal(rate) / 100)

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")

    def remaining(self, used: int) -> int:
        return max(self.value - used, 0)

    def admits(self, used: int, quantity: int = 1) -> bool:
        return used + quantity <= self.value


class DiscountType(Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"


@dataclass(frozen=True)
class Discount:
    """A percentage or a fixed amount taken off a price."""

    type: DiscountType
    value: Decimal

    def __post_init__(self) -> None:
        if self.value <= 0:
            raise ValueError("Discount value must be positive")
        if self.type is DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")

    def amount_off(self, price: Money) -> Money:
        """Return the discount on ``price``; never more than the price itself."""
        if self.type is DiscountType.PERCENTAGE:
            return price.percent(self.value)
        return Money(min(self.value, price.amount))
