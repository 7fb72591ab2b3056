"""
Audit events -- locale-neutral records emitted by the settlement engines.

Engines never build display strings.  They append ``AuditEvent`` records
(kind + fields) to a per-call ``AuditTrail``; rendering to text belongs to
``settlement_services.narrative``.

Field values are plain data: ``str``, ``int``, ``Decimal`` and tuples of
those, so a trail can be serialized or compared in tests without custom
encoders.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class AuditEventKind(str, Enum):
    """Kind of audit event, in roughly the order the engines emit them."""

    # Netting
    NETTING_STARTED = "netting_started"
    CYCLE_FOUND = "cycle_found"
    CYCLE_OFFSET_STEP = "cycle_offset_step"
    NETTING_PASS_CAP_REACHED = "netting_pass_cap_reached"
    NETTING_COMPLETED = "netting_completed"
    COMPANY_OFFSET_TOTAL = "company_offset_total"

    # Cascade
    CASCADE_STARTED = "cascade_started"
    NO_ACTION_NEEDED = "no_action_needed"
    CASH_NODE_CONNECTED = "cash_node_connected"
    CASH_TRAPPED = "cash_trapped"
    CASCADE_BLOCKED = "cascade_blocked"
    NEGATIVE_CYCLE_DETECTED = "negative_cycle_detected"
    AUGMENTATION_CAP_REACHED = "augmentation_cap_reached"
    CHAIN_SETTLED = "chain_settled"
    CHAIN_FUNDS_COMMITTED = "chain_funds_committed"
    CHAIN_TRANSFER = "chain_transfer"
    TRANSFER_RECOMMENDED = "transfer_recommended"
    CASCADE_COMPLETED = "cascade_completed"
    FUNDS_USED = "funds_used"
    NO_FUNDS_USED = "no_funds_used"
    FINAL_BALANCE = "final_balance"


# Kinds that signal a safety valve fired; results are partial but valid.
DIAGNOSTIC_KINDS: frozenset[AuditEventKind] = frozenset({
    AuditEventKind.NETTING_PASS_CAP_REACHED,
    AuditEventKind.NEGATIVE_CYCLE_DETECTED,
    AuditEventKind.AUGMENTATION_CAP_REACHED,
})


@dataclass(frozen=True)
class AuditEvent:
    """One structured entry in the audit trail."""

    kind: AuditEventKind
    fields: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.fields[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self.fields.get(key, default)

    @property
    def is_diagnostic(self) -> bool:
        return self.kind in DIAGNOSTIC_KINDS


class AuditTrail:
    """Ordered, append-only collector owned by a single engine call."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    def emit(self, kind: AuditEventKind, **fields: Any) -> AuditEvent:
        event = AuditEvent(kind=kind, fields=fields)
        self._events.append(event)
        return event

    def extend(self, events: tuple[AuditEvent, ...] | list[AuditEvent]) -> None:
        self._events.extend(events)

    def of_kind(self, kind: AuditEventKind) -> list[AuditEvent]:
        return [e for e in self._events if e.kind == kind]

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> tuple[AuditEvent, ...]:
        return tuple(self._events)
