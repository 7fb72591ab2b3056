"""
Values -- Immutable domain value objects for intercompany settlement.

Responsibility:
    Company, DebtObligation and Transaction records shared by every engine,
    plus the amount coercion used at construction time.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines and services. No outward dependencies except
    settlement_kernel.exceptions.

Invariants enforced:
    - All amounts are ``Decimal``; floats are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.1")`` rather than its binary expansion.
    - Records are frozen; engines copy amounts into their own working lists
      and never mutate caller input.

Failure modes:
    - InvalidInputError when an amount cannot be read as a number.

Positivity, known identifiers and non-negative balances are checked by
``settlement_kernel.domain.validation`` at the engine boundary, not here,
so that a caller can build a record and receive a typed error later.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from settlement_kernel.exceptions import InvalidInputError

ZERO = Decimal("0")

# Amounts at or below this are floating residue, not live debt.
DEFAULT_EPSILON = Decimal("0.000001")


def to_amount(value: Any) -> Decimal:
    """Coerce ``value`` to ``Decimal``.

    Raises:
        InvalidInputError: if the value is a bool, ``None`` or unparseable.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"Cannot read amount from {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise InvalidInputError(f"Cannot read amount from {value!r}") from exc


@dataclass(frozen=True, slots=True)
class Company:
    """
    A group member holding cash.

    ``balance`` is the cash available to the cascade step.  ``min_reserved``
    is kept back and never committed to a chain.
    """

    id: str
    name: str = ""
    balance: Decimal = ZERO
    min_reserved: Decimal = ZERO

    def __post_init__(self) -> None:
        object.__setattr__(self, "balance", to_amount(self.balance))
        object.__setattr__(self, "min_reserved", to_amount(self.min_reserved))

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def spendable_cash(self) -> Decimal:
        """Cash that may enter a settlement chain, floored at zero."""
        spendable = self.balance - self.min_reserved
        return spendable if spendable > ZERO else ZERO


@dataclass(frozen=True, slots=True)
class DebtObligation:
    """``source`` owes ``target`` the given ``amount``."""

    id: str
    source: str
    target: str
    amount: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_amount(self.amount))

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target


@dataclass(frozen=True, slots=True)
class Transaction:
    """A recommended net money movement produced by an engine."""

    id: str
    source: str
    target: str
    amount: Decimal

    def as_obligation(self) -> DebtObligation:
        """Feed a netting output back in as cascade input."""
        return DebtObligation(
            id=self.id,
            source=self.source,
            target=self.target,
            amount=self.amount,
        )
