"""
settlement_engines.cascade -- Cash cascade optimization.

Responsibility:
    Use the group's spendable cash to cancel as much remaining debt as
    possible.  Cash entering company A and paid along A -> B -> C cancels
    the A->B and B->C debts with one outlay, so longer chains are worth
    more per unit of cash.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Composes flow_network -> min_cost_flow -> flow_decomposition.

Preconditions:
    Obligations should be the output of ``net_cycles``.  An acyclic debt
    graph guarantees the residual network has no negative cycle; a cyclic
    one is survived through the solver's negative-cycle valve.

Invariants enforced:
    - Cash used never exceeds total spendable cash, nor the debt cancelled.
      One unit of cash can cancel several units of debt along a chain.
    - Caller input is never mutated; the network is built and dropped per call.
    - ``original_total_debt`` may not be below the debt handed to this step.

Audit relevance:
    The trail opens with ``CASCADE_STARTED`` and the connectivity check,
    narrates each chain with simulated balances, lists recommended
    transfers, reconciles global figures in ``CASCADE_COMPLETED`` and closes
    with fund usage and final balances.

Usage:
    from settlement_engines.netting import net_cycles
    from settlement_engines.cascade import cascade_optimize

    netted = net_cycles(companies, obligations)
    result = cascade_optimize(
        companies,
        netted.transactions,
        original_total_debt=netted.original_total,
    )
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from settlement_engines.flow_decomposition import (
    DebtReconciliation,
    SettlementChain,
    compute_final_balances,
    decompose_flow,
    derive_transactions,
    reconcile,
    report_chains,
)
from settlement_engines.flow_network import build_flow_network, check_cash_connectivity
from settlement_engines.min_cost_flow import FlowSolution, solve_min_cost_flow
from settlement_engines.obligation_graph import total_debt
from settlement_engines.tracer import traced_engine
from settlement_kernel.domain.events import AuditEvent, AuditEventKind, AuditTrail
from settlement_kernel.domain.identifiers import IdGenerator, SequentialIdGenerator
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.validation import validate_settlement_inputs
from settlement_kernel.domain.values import ZERO, Company, Transaction, to_amount
from settlement_kernel.exceptions import InconsistentBaselineError
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.cascade")


@dataclass(frozen=True)
class CascadeResult:
    """Outcome of ``cascade_optimize``."""

    transactions: tuple[Transaction, ...]
    logs: tuple[AuditEvent, ...]
    final_balances: dict[str, Decimal] = field(default_factory=dict)
    chains: tuple[SettlementChain, ...] = ()
    solution: FlowSolution | None = None
    reconciliation: DebtReconciliation | None = None

    @property
    def total_reduced(self) -> Decimal:
        return self.solution.debt_reduced if self.solution else ZERO

    @property
    def cash_used(self) -> Decimal:
        return self.solution.total_flow if self.solution else ZERO


def _emit_fund_usage(
    companies: Sequence[Company],
    source_flows: dict[str, Decimal],
    trail: AuditTrail,
    epsilon: Decimal,
) -> None:
    paying = [c for c in companies if source_flows[c.id] > epsilon]
    for company in paying:
        trail.emit(
            AuditEventKind.FUNDS_USED,
            company_id=company.id,
            amount=source_flows[company.id],
        )
    if not paying:
        trail.emit(AuditEventKind.NO_FUNDS_USED)


@traced_engine(
    "cascade", "1.0",
    fingerprint_fields=("companies", "obligations", "original_total_debt"),
)
def cascade_optimize(
    companies: Sequence[Company],
    obligations: Sequence[Any],
    original_total_debt: Decimal | int | str | None = None,
    *,
    settings: EngineSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> CascadeResult:
    """
    Route spendable cash through debt chains to cancel the most debt.

    Args:
        companies: Group members with cash balances.
        obligations: Netted obligations (``Transaction`` or
            ``DebtObligation`` records).
        original_total_debt: Debt total before netting, used as the
            reconciliation baseline.  Defaults to the sum of ``obligations``.
        settings: Engine settings; defaults to ``EngineSettings()``.
        id_generator: Source of transaction ids; defaults to a fresh
            counter per call.

    Returns:
        CascadeResult with payment transactions, audit trail and final
        balances per company.

    Raises:
        InvalidInputError: on malformed companies/obligations or a baseline
            that is not finite or is below the obligations' total.
    """
    settings = settings or DEFAULT_SETTINGS
    validate_settlement_inputs(companies, obligations)
    ids = id_generator or SequentialIdGenerator(settings.transaction_id_prefix)

    current_total = total_debt(obligations)
    baseline = current_total if original_total_debt is None else to_amount(original_total_debt)
    if not baseline.is_finite() or baseline < current_total:
        raise InconsistentBaselineError(baseline, current_total)
    available_cash = sum((c.spendable_cash for c in companies), ZERO)

    t0 = time.monotonic()
    logger.info("cascade_started", extra={
        "company_count": len(companies),
        "obligation_count": len(obligations),
        "cascade_debt": str(current_total),
        "available_cash": str(available_cash),
    })

    trail = AuditTrail()
    trail.emit(
        AuditEventKind.CASCADE_STARTED,
        initial_total_debt=baseline,
        cascade_debt=current_total,
        available_cash=available_cash,
    )
    if current_total <= settings.epsilon:
        trail.emit(AuditEventKind.NO_ACTION_NEEDED, reason="no_debts")
    elif available_cash <= settings.epsilon:
        trail.emit(AuditEventKind.NO_ACTION_NEEDED, reason="no_cash")

    network = build_flow_network(companies, obligations, settings)
    if current_total > settings.epsilon:
        check_cash_connectivity(network, companies, trail, settings)

    solution = solve_min_cost_flow(network, settings, trail)

    chains = decompose_flow(network, settings.epsilon)
    simulated = report_chains(chains, companies, trail)

    transactions = derive_transactions(network, ids, settings.epsilon)
    for tx in transactions:
        trail.emit(
            AuditEventKind.TRANSFER_RECOMMENDED,
            transaction_id=tx.id,
            source=tx.source,
            target=tx.target,
            amount=tx.amount,
        )

    reconciliation = reconcile(baseline, current_total, solution)
    trail.emit(
        AuditEventKind.CASCADE_COMPLETED,
        original_total=reconciliation.original_total,
        total_eliminated=reconciliation.total_eliminated,
        netting_eliminated=reconciliation.netting_eliminated,
        cascade_eliminated=reconciliation.cascade_eliminated,
        final_remaining=reconciliation.final_remaining,
        cash_used=reconciliation.cash_used,
        termination=solution.termination.value,
    )

    source_flows = {c.id: network.source_flow(c.id) for c in companies}
    _emit_fund_usage(companies, source_flows, trail, settings.epsilon)
    for company in companies:
        trail.emit(
            AuditEventKind.FINAL_BALANCE,
            company_id=company.id,
            balance=simulated[company.id],
        )

    final_balances = compute_final_balances(network, companies)

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("cascade_completed", extra={
        "transaction_count": len(transactions),
        "chain_count": len(chains),
        "cash_used": str(solution.total_flow),
        "debt_reduced": str(solution.debt_reduced),
        "termination": solution.termination.value,
        "duration_ms": duration_ms,
    })

    return CascadeResult(
        transactions=tuple(transactions),
        logs=trail.events,
        final_balances=final_balances,
        chains=tuple(chains),
        solution=solution,
        reconciliation=reconciliation,
    )
