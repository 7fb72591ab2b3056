"""
settlement_engines.netting -- Cycle-cancellation netting engine.

Responsibility:
    Eliminate every directed cycle in the obligation graph by reducing each
    edge on a cycle by the cycle's smallest amount, then aggregate parallel
    edges into one transaction per ``(source, target)`` pair.  No cash
    moves; only gross bilateral amounts shrink.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel and sibling engine modules.

Invariants enforced:
    - Net position of every company (owed minus owing) is unchanged.
    - The returned transactions form an acyclic graph.
    - Each pass zeroes at least one obligation, so passes never exceed the
      number of input obligations.  A pass cap of ``len(obligations) + 1``
      backs this up; reaching it emits ``NETTING_PASS_CAP_REACHED`` and the
      reduction achieved so far is returned.
    - Caller input is never mutated.

Failure modes:
    - InvalidInputError subclasses from boundary validation.

Audit relevance:
    Every cycle is recorded as a ``CYCLE_FOUND`` event followed by one
    ``CYCLE_OFFSET_STEP`` per edge; a ``NETTING_COMPLETED`` summary and one
    ``COMPANY_OFFSET_TOTAL`` per company close the trail.

Usage:
    from settlement_engines.netting import net_cycles

    result = net_cycles(companies, obligations)
    result.transactions   # reduced, aggregated obligations
    result.logs           # tuple of AuditEvent
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from settlement_engines.obligation_graph import (
    ObligationGraph,
    WorkingObligation,
    total_debt,
    working_copy,
)
from settlement_engines.tracer import traced_engine
from settlement_kernel.domain.events import AuditEvent, AuditEventKind, AuditTrail
from settlement_kernel.domain.identifiers import IdGenerator, SequentialIdGenerator
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.validation import validate_settlement_inputs
from settlement_kernel.domain.values import ZERO, Company, Transaction
from settlement_kernel.exceptions import EngineInvariantError
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.netting")

# One DFS step: the company an edge leaves from and the edge's working index.
PathStep = tuple[str, int]


@dataclass(frozen=True)
class CycleRecord:
    """A cancelled cycle.

    ``participants`` lists each company once, in traversal order; the cycle
    closes back on ``participants[0]``.
    """

    number: int
    participants: tuple[str, ...]
    min_amount: Decimal
    obligation_ids: tuple[str, ...]

    @property
    def eliminated(self) -> Decimal:
        return self.min_amount * len(self.participants)


@dataclass(frozen=True)
class NettingResult:
    """Outcome of ``net_cycles``.

    ``original_total`` counts live debt only.  Obligations at or below
    epsilon are residue and never enter the totals.
    """

    transactions: tuple[Transaction, ...]
    logs: tuple[AuditEvent, ...]
    cycles: tuple[CycleRecord, ...] = ()
    offsets: dict[str, Decimal] = field(default_factory=dict)
    passes: int = 0
    original_total: Decimal = ZERO
    remaining_total: Decimal = ZERO
    cap_reached: bool = False

    @property
    def eliminated(self) -> Decimal:
        return self.original_total - self.remaining_total


def _dfs_cycle_path(
    company_order: Sequence[str],
    graph: ObligationGraph,
) -> list[PathStep] | None:
    """Depth-first search for the first cycle reachable in company order.

    Uses an explicit stack of ``[node, next_edge_position]`` frames.  The
    returned path holds one step per frame below the root plus the closing
    edge, so it may start with an acyclic prefix.
    """
    visited: set[str] = set()
    on_stack: set[str] = set()

    for root in company_order:
        if root in visited:
            continue
        visited.add(root)
        on_stack.add(root)
        frames: list[list[Any]] = [[root, 0]]
        path: list[PathStep] = []

        while frames:
            frame = frames[-1]
            node, position = frame
            outgoing = graph.outgoing(node)
            if position >= len(outgoing):
                frames.pop()
                on_stack.discard(node)
                if frames:
                    path.pop()
                continue

            frame[1] = position + 1
            edge = outgoing[position]
            if edge.target in on_stack:
                path.append((node, edge.edge_index))
                return path
            if edge.target in visited:
                continue
            path.append((node, edge.edge_index))
            visited.add(edge.target)
            on_stack.add(edge.target)
            frames.append([edge.target, 0])

    return None


def _cyclic_suffix(
    path: list[PathStep],
    obligations: Sequence[WorkingObligation],
) -> list[PathStep]:
    """Strip the acyclic prefix: start at the first step leaving the closing node."""
    closing = obligations[path[-1][1]].target
    for start, (source, _) in enumerate(path):
        if source == closing:
            return path[start:]
    # The closing node was on the recursion stack, so it is always a source.
    raise EngineInvariantError("netting", f"cycle start {closing!r} not on DFS path")


def find_cycle(
    company_order: Sequence[str],
    obligations: Sequence[WorkingObligation],
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> list[PathStep] | None:
    """Return the cyclic steps of the first cycle found, or None if acyclic."""
    path = _dfs_cycle_path(company_order, ObligationGraph(obligations, epsilon))
    if path is None:
        return None
    return _cyclic_suffix(path, obligations)


def has_cycle(
    companies: Sequence[Company],
    obligations: Sequence[Any],
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> bool:
    order = [c.id for c in companies]
    return find_cycle(order, working_copy(obligations, epsilon), epsilon) is not None


def _cancel_cycle(
    number: int,
    cycle: list[PathStep],
    obligations: list[WorkingObligation],
    offsets: dict[str, Decimal],
    trail: AuditTrail,
) -> CycleRecord:
    """Reduce every obligation on ``cycle`` by its minimum, in place."""
    edges = [obligations[index] for _, index in cycle]
    min_amount = min(edge.amount for edge in edges)
    participants = tuple(edge.source for edge in edges)

    trail.emit(
        AuditEventKind.CYCLE_FOUND,
        cycle_number=number,
        participants=participants,
        min_amount=min_amount,
    )
    for step, edge in enumerate(edges, start=1):
        edge.amount -= min_amount
        offsets[edge.source] = offsets.get(edge.source, ZERO) + min_amount
        trail.emit(
            AuditEventKind.CYCLE_OFFSET_STEP,
            cycle_number=number,
            step=step,
            obligation_id=edge.id,
            source=edge.source,
            target=edge.target,
            offset=min_amount,
        )

    logger.debug("netting_cycle_cancelled", extra={
        "cycle_number": number,
        "participants": list(participants),
        "min_amount": str(min_amount),
    })
    return CycleRecord(
        number=number,
        participants=participants,
        min_amount=min_amount,
        obligation_ids=tuple(edge.id for edge in edges),
    )


def aggregate_parallel(
    obligations: Sequence[WorkingObligation],
    id_generator: IdGenerator,
) -> list[Transaction]:
    """Sum obligations sharing ``(source, target)``, in first-appearance order."""
    combined: dict[tuple[str, str], Decimal] = {}
    for obligation in obligations:
        key = (obligation.source, obligation.target)
        combined[key] = combined.get(key, ZERO) + obligation.amount
    return [
        Transaction(id=id_generator.next_id(), source=source, target=target, amount=amount)
        for (source, target), amount in combined.items()
    ]


@traced_engine("netting", "1.0", fingerprint_fields=("companies", "obligations"))
def net_cycles(
    companies: Sequence[Company],
    obligations: Sequence[Any],
    *,
    settings: EngineSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> NettingResult:
    """
    Cancel circular debt until the obligation graph is acyclic.

    Pure function - no side effects on inputs, deterministic for a fixed
    input order.

    Args:
        companies: Group members; their order drives DFS root selection.
        obligations: ``DebtObligation`` (or any record with id, source,
            target, amount) where source owes target.
        settings: Engine settings; defaults to ``EngineSettings()``.
        id_generator: Source of transaction ids; defaults to a fresh
            counter per call.

    Returns:
        NettingResult with aggregated transactions and the audit trail.

    Raises:
        InvalidInputError: on unknown ids, non-positive amounts, negative
            balances or duplicate companies.
    """
    settings = settings or DEFAULT_SETTINGS
    validate_settlement_inputs(companies, obligations)
    ids = id_generator or SequentialIdGenerator(settings.transaction_id_prefix)

    t0 = time.monotonic()
    working = working_copy(obligations, settings.epsilon)
    original_total = total_debt(working)
    logger.info("netting_started", extra={
        "company_count": len(companies),
        "obligation_count": len(obligations),
        "total_debt": str(original_total),
        "residue_ignored": str(total_debt(obligations) - original_total),
    })

    trail = AuditTrail()
    trail.emit(
        AuditEventKind.NETTING_STARTED,
        obligation_count=len(obligations),
        total_debt=original_total,
    )

    order = [c.id for c in companies]
    pass_cap = len(obligations) + 1
    cycles: list[CycleRecord] = []
    offsets: dict[str, Decimal] = {}
    cap_reached = False

    while True:
        cycle = find_cycle(order, working, settings.epsilon)
        if cycle is None:
            break
        if len(cycles) >= pass_cap:
            cap_reached = True
            trail.emit(AuditEventKind.NETTING_PASS_CAP_REACHED, passes=len(cycles))
            logger.warning("netting_pass_cap_reached", extra={
                "passes": len(cycles),
                "pass_cap": pass_cap,
            })
            break
        cycles.append(_cancel_cycle(len(cycles) + 1, cycle, working, offsets, trail))
        working = [o for o in working if o.amount > settings.epsilon]

    transactions = aggregate_parallel(working, ids)
    remaining_total = total_debt(transactions)

    trail.emit(
        AuditEventKind.NETTING_COMPLETED,
        original_count=len(obligations),
        final_count=len(transactions),
        cycle_count=len(cycles),
        original_total=original_total,
        remaining_total=remaining_total,
        eliminated=original_total - remaining_total,
    )
    for company_id, amount in offsets.items():
        trail.emit(
            AuditEventKind.COMPANY_OFFSET_TOTAL,
            company_id=company_id,
            amount=amount,
        )

    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("netting_completed", extra={
        "cycle_count": len(cycles),
        "final_count": len(transactions),
        "eliminated": str(original_total - remaining_total),
        "duration_ms": duration_ms,
    })

    return NettingResult(
        transactions=tuple(transactions),
        logs=trail.events,
        cycles=tuple(cycles),
        offsets=offsets,
        passes=len(cycles),
        original_total=original_total,
        remaining_total=remaining_total,
        cap_reached=cap_reached,
    )
