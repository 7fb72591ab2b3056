"""
Boundary validation for settlement inputs.

Engines assume well-formed input: positive amounts, known company ids and
non-negative balances.  ``validate_settlement_inputs`` is called once at
each engine entry point and fails fast with a typed ``InvalidInputError``
instead of letting a malformed record silently skew the result.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from settlement_kernel.domain.values import ZERO, Company, to_amount
from settlement_kernel.exceptions import (
    BlankIdentifierError,
    DuplicateCompanyError,
    NegativeBalanceError,
    NonPositiveAmountError,
    UnknownCompanyError,
)
from settlement_kernel.logging_config import get_logger

logger = get_logger("domain.validation")


def validate_companies(companies: Sequence[Company]) -> dict[str, Company]:
    """Check company ids and balances; return them indexed by id."""
    by_id: dict[str, Company] = {}
    for position, company in enumerate(companies):
        if not company.id:
            raise BlankIdentifierError("company", position)
        if company.id in by_id:
            raise DuplicateCompanyError(company.id)
        if not company.balance.is_finite() or company.balance < ZERO:
            raise NegativeBalanceError(company.id, company.balance)
        if not company.min_reserved.is_finite() or company.min_reserved < ZERO:
            raise NegativeBalanceError(company.id, company.min_reserved)
        by_id[company.id] = company
    return by_id


def validate_obligations(
    obligations: Sequence[Any],
    known_ids: set[str] | dict[str, Company],
) -> None:
    """Check every obligation has an id, known endpoints and a positive amount."""
    for position, obligation in enumerate(obligations):
        if not obligation.id:
            raise BlankIdentifierError("obligation", position)
        if obligation.source not in known_ids:
            raise UnknownCompanyError(obligation.id, obligation.source, "source")
        if obligation.target not in known_ids:
            raise UnknownCompanyError(obligation.id, obligation.target, "target")
        amount = to_amount(obligation.amount)
        if not amount.is_finite() or amount <= ZERO:
            raise NonPositiveAmountError(obligation.id, amount)


def validate_settlement_inputs(
    companies: Sequence[Company],
    obligations: Sequence[Any],
) -> dict[str, Company]:
    """Validate both lists; return companies indexed by id.

    Raises:
        InvalidInputError: subclass describing the first violation found.
    """
    by_id = validate_companies(companies)
    validate_obligations(obligations, by_id)
    logger.debug("settlement_inputs_validated", extra={
        "company_count": len(by_id),
        "obligation_count": len(obligations),
    })
    return by_id
