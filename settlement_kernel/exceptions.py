"""
Typed exception hierarchy for the settlement kernel.

Every error carries a class-level ``code`` (machine-readable, API-safe) and
stores its context as attributes, so callers catch by type and report by
field instead of parsing messages.

    SettlementKernelError (base)
    |
    +-- InvalidInputError
    |   +-- BlankIdentifierError
    |   +-- DuplicateCompanyError
    |   +-- UnknownCompanyError
    |   +-- NonPositiveAmountError
    |   +-- NegativeBalanceError
    |   +-- InconsistentBaselineError
    |
    +-- ConfigurationError
    |
    +-- EngineInvariantError

Category        | Code                   | When Raised
----------------|------------------------|-------------------------------------
Input           | INVALID_INPUT          | Generic malformed input shape
                | BLANK_IDENTIFIER       | Empty company / obligation id
                | DUPLICATE_COMPANY      | Same company id listed twice
                | UNKNOWN_COMPANY        | Obligation references unknown id
                | NON_POSITIVE_AMOUNT    | Obligation amount <= 0 or not finite
                | NEGATIVE_BALANCE       | Company cash balance < 0
                | INCONSISTENT_BASELINE  | Pre-netting total non-finite or below input
----------------|------------------------|-------------------------------------
Configuration   | INVALID_CONFIGURATION  | Engine settings failed validation
----------------|------------------------|-------------------------------------
Engine          | ENGINE_INVARIANT       | Internal engine state is inconsistent

Safety-valve conditions (pass caps, negative cycles) are NOT exceptions.
They are reported as audit events and the engines return partial results.
"""

from decimal import Decimal


class SettlementKernelError(Exception):
    """
    Base exception for all settlement kernel errors.

    All subclasses must have a ``code`` class attribute.
    """

    code: str = "SETTLEMENT_KERNEL_ERROR"


# Input validation


class InvalidInputError(SettlementKernelError):
    """Caller-supplied companies or obligations are malformed."""

    code: str = "INVALID_INPUT"


class BlankIdentifierError(InvalidInputError):
    """A company or obligation has an empty identifier."""

    code: str = "BLANK_IDENTIFIER"

    def __init__(self, entity: str, position: int):
        self.entity = entity
        self.position = position
        super().__init__(f"Blank identifier for {entity} at position {position}")


class DuplicateCompanyError(InvalidInputError):
    """The same company id appears more than once."""

    code: str = "DUPLICATE_COMPANY"

    def __init__(self, company_id: str):
        self.company_id = company_id
        super().__init__(f"Duplicate company id: {company_id}")


class UnknownCompanyError(InvalidInputError):
    """An obligation references a company that was not supplied."""

    code: str = "UNKNOWN_COMPANY"

    def __init__(self, obligation_id: str, company_id: str, role: str):
        self.obligation_id = obligation_id
        self.company_id = company_id
        self.role = role
        super().__init__(
            f"Obligation {obligation_id} references unknown {role} company: {company_id}"
        )


class NonPositiveAmountError(InvalidInputError):
    """An obligation amount is zero, negative or not finite."""

    code: str = "NON_POSITIVE_AMOUNT"

    def __init__(self, obligation_id: str, amount: Decimal):
        self.obligation_id = obligation_id
        self.amount = amount
        super().__init__(
            f"Obligation {obligation_id} has non-positive amount: {amount}"
        )


class NegativeBalanceError(InvalidInputError):
    """A company cash balance is negative or not finite."""

    code: str = "NEGATIVE_BALANCE"

    def __init__(self, company_id: str, balance: Decimal):
        self.company_id = company_id
        self.balance = balance
        super().__init__(f"Company {company_id} has negative balance: {balance}")


class InconsistentBaselineError(InvalidInputError):
    """The pre-netting debt baseline is not finite or is below the cascade input."""

    code: str = "INCONSISTENT_BASELINE"

    def __init__(self, baseline: Decimal, current_total: Decimal):
        self.baseline = baseline
        self.current_total = current_total
        super().__init__(
            f"Original total debt {baseline} is not a valid baseline for cascade input total {current_total}"
        )


# Configuration


class ConfigurationError(SettlementKernelError):
    """Engine settings failed validation."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Invalid setting {setting!r}: {reason}")


# Engine internals


class EngineInvariantError(SettlementKernelError):
    """An engine reached a state its own construction rules out."""

    code: str = "ENGINE_INVARIANT"

    def __init__(self, engine: str, detail: str):
        self.engine = engine
        self.detail = detail
        super().__init__(f"{engine} invariant violated: {detail}")
