"""
settlement_services.narrative -- Render audit events as display text.

The engines emit locale-neutral ``AuditEvent`` records.  This module is the
presentation layer that turns a trail into the English audit log shown to
treasury users: numbered cycles and chain steps, section headers around
summaries, company display names instead of ids where known.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from decimal import Decimal
from itertools import groupby

from settlement_kernel.domain.events import AuditEvent, AuditEventKind as K
from settlement_kernel.domain.values import Company

SEPARATOR = "--------------------------------"

# Consecutive events of these kinds are framed by a header and SEPARATOR.
_SECTION_HEADERS: dict[K, str] = {
    K.COMPANY_OFFSET_TOTAL: "--- Netting Execution Summary ---",
    K.CASH_NODE_CONNECTED: "--- Cash Node Connectivity Check ---",
    K.TRANSFER_RECOMMENDED: "--- Recommended Transfers Summary ---",
    K.FUNDS_USED: "--- Fund Usage Summary ---",
    K.NO_FUNDS_USED: "--- Fund Usage Summary ---",
    K.FINAL_BALANCE: "--- Final Balances Snapshot ---",
}
# Kinds that share a section with another kind's header.
_SECTION_ALIASES: dict[K, K] = {
    K.CASH_TRAPPED: K.CASH_NODE_CONNECTED,
    K.CASCADE_BLOCKED: K.CASH_NODE_CONNECTED,
}


def fmt_amount(value: Decimal) -> str:
    """``Decimal("100.00")`` -> ``"100"``, ``Decimal("12.50")`` -> ``"12.5"``."""
    if value == value.to_integral_value():
        return str(value.quantize(Decimal(1)))
    return format(value.normalize(), "f")


def names_from(companies: Iterable[Company]) -> dict[str, str]:
    return {c.id: c.display_name for c in companies}


class _Renderer:
    def __init__(self, names: Mapping[str, str]):
        self._names = names

    def name(self, company_id: str) -> str:
        return self._names.get(company_id, company_id)

    def chain(self, ids: Sequence[str]) -> str:
        return " -> ".join(self.name(i) for i in ids)

    def render(self, e: AuditEvent) -> list[str]:
        handler: Callable[[AuditEvent], list[str]] = getattr(self, f"_{e.kind.value}")
        return handler(e)

    # Netting

    def _netting_started(self, e: AuditEvent) -> list[str]:
        return [
            f"Netting {e['obligation_count']} debts "
            f"(total {fmt_amount(e['total_debt'])})..."
        ]

    def _cycle_found(self, e: AuditEvent) -> list[str]:
        participants = e["participants"]
        path = self.chain(participants + participants[:1])
        return [
            f"[Cycle #{e['cycle_number']}] Found cycle: {path}. "
            f"Min amount: {fmt_amount(e['min_amount'])}.",
            "  > Execution Details:",
        ]

    def _cycle_offset_step(self, e: AuditEvent) -> list[str]:
        return [
            f"    [Step {e['step']}] {self.name(e['source'])} -> "
            f"{self.name(e['target'])}: Offset {fmt_amount(e['offset'])}"
        ]

    def _netting_pass_cap_reached(self, e: AuditEvent) -> list[str]:
        return [f"Netting stopped after {e['passes']} passes: pass cap reached."]

    def _netting_completed(self, e: AuditEvent) -> list[str]:
        return [
            f"Optimization complete. Reduced from {e['original_count']} "
            f"to {e['final_count']} debts."
        ]

    def _company_offset_total(self, e: AuditEvent) -> list[str]:
        return [f"{self.name(e['company_id'])}: Offset Debt {fmt_amount(e['amount'])}"]

    # Cascade

    def _cascade_started(self, e: AuditEvent) -> list[str]:
        return [
            "Starting Max-Debt-Reduction Flow (MCMF)...",
            f"Initial Total Debt: {fmt_amount(e['initial_total_debt'])} "
            f"(Cascade processing: {fmt_amount(e['cascade_debt'])}). "
            f"Available Cash: {fmt_amount(e['available_cash'])}",
        ]

    def _no_action_needed(self, e: AuditEvent) -> list[str]:
        reason = {"no_debts": "no debts to settle", "no_cash": "no cash available"}
        return [f"No action needed: {reason.get(e['reason'], e['reason'])}."]

    def _cash_node_connected(self, e: AuditEvent) -> list[str]:
        return [
            f"[OK] {self.name(e['company_id'])} (Bal: {fmt_amount(e['balance'])}) "
            "-> Debt found, can cascade."
        ]

    def _cash_trapped(self, e: AuditEvent) -> list[str]:
        return [
            f"[Warning] {self.name(e['company_id'])} (Bal: {fmt_amount(e['balance'])}) "
            "-> No outgoing debts. Cash trapped."
        ]

    def _cascade_blocked(self, e: AuditEvent) -> list[str]:
        return ["Conclusion: No company with cash has debts. Cascade failed."]

    def _negative_cycle_detected(self, e: AuditEvent) -> list[str]:
        return ["Negative cycle detected, stopping to prevent infinite loop."]

    def _augmentation_cap_reached(self, e: AuditEvent) -> list[str]:
        return [
            f"Augmentation cap of {e['augmentation_cap']} reached; "
            "returning partial result."
        ]

    def _chain_settled(self, e: AuditEvent) -> list[str]:
        return [
            f"[Cash Flow] {self.chain(e['chain'])}: {fmt_amount(e['amount'])}. "
            f"(Total Debt Reduced: {fmt_amount(e['debt_reduced'])})",
            "  > Execution Steps:",
        ]

    def _chain_funds_committed(self, e: AuditEvent) -> list[str]:
        return [
            f"    [{e['step']}] {self.name(e['company_id'])} uses funds "
            f"{fmt_amount(e['amount'])}. (Bal: {fmt_amount(e['balance'])})"
        ]

    def _chain_transfer(self, e: AuditEvent) -> list[str]:
        payee = self.name(e["target"])
        return [
            f"    [{e['step']}] {self.name(e['source'])} -> {payee}: "
            f"{fmt_amount(e['amount'])}. {payee} receives. "
            f"(Bal: {fmt_amount(e['balance'])})"
        ]

    def _transfer_recommended(self, e: AuditEvent) -> list[str]:
        return [
            f"[Transfer] {self.name(e['source'])} -> {self.name(e['target'])}: "
            f"{fmt_amount(e['amount'])}"
        ]

    def _cascade_completed(self, e: AuditEvent) -> list[str]:
        return [
            "Algorithm Complete.",
            f"Original Total Debt: {fmt_amount(e['original_total'])}",
            f"Total Reduced: {fmt_amount(e['total_eliminated'])} "
            f"(Netting: {fmt_amount(e['netting_eliminated'])}, "
            f"Cascade: {fmt_amount(e['cascade_eliminated'])})",
            f"Final Remaining: {fmt_amount(e['final_remaining'])}",
            f"Total Cash Used: {fmt_amount(e['cash_used'])}",
        ]

    def _funds_used(self, e: AuditEvent) -> list[str]:
        return [f"{self.name(e['company_id'])}: Funds Used {fmt_amount(e['amount'])}"]

    def _no_funds_used(self, e: AuditEvent) -> list[str]:
        return ["No funds used (Fully netted or no action needed)"]

    def _final_balance(self, e: AuditEvent) -> list[str]:
        return [f"{self.name(e['company_id'])}: {fmt_amount(e['balance'])}"]


def _section_of(kind: K) -> str | None:
    return _SECTION_HEADERS.get(_SECTION_ALIASES.get(kind, kind))


def render_events(
    events: Iterable[AuditEvent],
    names: Mapping[str, str] | None = None,
) -> list[str]:
    """Render an audit trail to display lines.

    Args:
        events: Events in emission order.
        names: Optional company id -> display name mapping.
    """
    renderer = _Renderer(names or {})
    lines: list[str] = []
    for header, group in groupby(events, key=lambda e: _section_of(e.kind)):
        if header is not None:
            lines.append(header)
        for event in group:
            lines.extend(renderer.render(event))
        if header is not None:
            lines.append(SEPARATOR)
    return lines
