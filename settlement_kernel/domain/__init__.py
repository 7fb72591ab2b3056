"""Settlement domain: value objects, audit events, ids and validation."""

from settlement_kernel.domain.events import (
    DIAGNOSTIC_KINDS,
    AuditEvent,
    AuditEventKind,
    AuditTrail,
)
from settlement_kernel.domain.identifiers import (
    IdGenerator,
    SequentialIdGenerator,
    UUIDIdGenerator,
)
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.validation import validate_settlement_inputs
from settlement_kernel.domain.values import (
    DEFAULT_EPSILON,
    ZERO,
    Company,
    DebtObligation,
    Transaction,
    to_amount,
)

__all__ = [
    "DIAGNOSTIC_KINDS",
    "AuditEvent",
    "AuditEventKind",
    "AuditTrail",
    "IdGenerator",
    "SequentialIdGenerator",
    "UUIDIdGenerator",
    "DEFAULT_SETTINGS",
    "EngineSettings",
    "validate_settlement_inputs",
    "DEFAULT_EPSILON",
    "ZERO",
    "Company",
    "DebtObligation",
    "Transaction",
    "to_amount",
]
