"""
settlement_engines.obligation_graph -- In-memory obligation graph.

Responsibility:
    Hold a mutable working copy of debt obligations and derive the
    adjacency structure the netting engine walks.  An edge ``u -> v`` means
    ``u`` owes ``v``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel.

Invariants enforced:
    - Obligations at or below epsilon are never part of the adjacency; they
      are floating residue, not live debt.
    - ``AdjacentDebt.edge_index`` points into the working list the graph was
      built from, so reductions apply in place.
    - Caller records are never mutated: ``working_copy`` copies amounts into
      ``WorkingObligation`` instances.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from settlement_kernel.domain.values import DEFAULT_EPSILON, ZERO, to_amount


@dataclass
class WorkingObligation:
    """Mutable copy of an obligation owned by one engine call."""

    id: str
    source: str
    target: str
    amount: Decimal

    @classmethod
    def from_record(cls, record: Any) -> WorkingObligation:
        return cls(
            id=record.id,
            source=record.source,
            target=record.target,
            amount=to_amount(record.amount),
        )


@dataclass(frozen=True)
class AdjacentDebt:
    """One outgoing edge in the adjacency mapping."""

    target: str
    amount: Decimal
    edge_index: int


def working_copy(
    obligations: Iterable[Any],
    epsilon: Decimal = DEFAULT_EPSILON,
) -> list[WorkingObligation]:
    """Copy live obligations into a fresh mutable list."""
    return [
        o for o in map(WorkingObligation.from_record, obligations) if o.amount > epsilon
    ]


class ObligationGraph:
    """
    Adjacency view over a working obligation list.

    The graph is a snapshot: after amounts change, build a new one.
    Outgoing edges keep the order of the working list, which together with
    company order is the only tie-break for cycle selection.
    """

    def __init__(
        self,
        obligations: Sequence[WorkingObligation],
        epsilon: Decimal = DEFAULT_EPSILON,
    ):
        self._obligations = obligations
        self._adjacency: dict[str, list[AdjacentDebt]] = {}
        for index, obligation in enumerate(obligations):
            if obligation.amount <= epsilon:
                continue
            self._adjacency.setdefault(obligation.source, []).append(
                AdjacentDebt(
                    target=obligation.target,
                    amount=obligation.amount,
                    edge_index=index,
                )
            )

    def outgoing(self, node: str) -> list[AdjacentDebt]:
        return self._adjacency.get(node, [])

    def obligation(self, edge_index: int) -> WorkingObligation:
        return self._obligations[edge_index]

    @property
    def adjacency(self) -> dict[str, list[AdjacentDebt]]:
        return self._adjacency

    @property
    def edge_count(self) -> int:
        return sum(len(edges) for edges in self._adjacency.values())


def net_positions(obligations: Iterable[Any]) -> dict[str, Decimal]:
    """Amount owed to each company minus amount it owes.

    Companies whose position is exactly zero are still listed when they
    appear on any obligation.
    """
    positions: dict[str, Decimal] = {}
    for obligation in obligations:
        amount = to_amount(obligation.amount)
        positions[obligation.source] = positions.get(obligation.source, ZERO) - amount
        positions[obligation.target] = positions.get(obligation.target, ZERO) + amount
    return positions


def total_debt(obligations: Iterable[Any]) -> Decimal:
    return sum((to_amount(o.amount) for o in obligations), ZERO)
