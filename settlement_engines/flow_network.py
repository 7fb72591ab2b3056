"""
settlement_engines.flow_network -- Residual flow network for the cascade step.

Responsibility:
    Model available cash as supply and debts as capacity:

        SUPER_SOURCE --(spendable cash, cost 0)--> company
        company      --(debt amount,   cost -1)--> creditor company
        company      --(infinite,      cost 0)--> SUPER_SINK

    Each unit of flow over a debt edge cancels one unit of debt, so the
    cheapest (most negative) flow is the one that cancels the most debt.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Edges live in an arena (``FlowNetwork.edges``) addressed by integer
      handles.  Every edge is added together with a reverse twin whose
      handle is stored in ``reverse``; the twin has capacity 0 and the
      negated cost.
    - ``push`` adds to the forward edge's flow and subtracts the same amount
      from its twin, so ``0 <= flow <= capacity`` holds on forward edges.
    - Self-loop obligations are skipped: a cost -1 loop would be a negative
      cycle in the residual graph.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any

from settlement_kernel.domain.events import AuditEventKind, AuditTrail
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.values import ZERO, Company, to_amount
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.flow_network")

SUPER_SOURCE = "__SUPER_SOURCE__"
SUPER_SINK = "__SUPER_SINK__"
SOURCE_INDEX = 0
SINK_INDEX = 1

DEBT_EDGE_COST = -1


@dataclass(slots=True)
class FlowEdge:
    """One arc in the residual graph."""

    tail: int
    to: int
    capacity: Decimal
    flow: Decimal
    cost: int
    reverse: int
    forward: bool = True
    is_debt: bool = False
    debt_id: str | None = None

    @property
    def residual(self) -> Decimal:
        return self.capacity - self.flow


class FlowNetwork:
    """
    Directed multigraph over dense integer node ids.

    Node 0 is SUPER_SOURCE and node 1 is SUPER_SINK; other labels get ids
    in the order they are first seen.
    """

    def __init__(self) -> None:
        self.node_ids: dict[str, int] = {}
        self.labels: list[str] = []
        self.adjacency: list[list[int]] = []
        self.edges: list[FlowEdge] = []
        self.node(SUPER_SOURCE)
        self.node(SUPER_SINK)

    def node(self, label: str) -> int:
        """Return the id for ``label``, creating the node on first use."""
        node_id = self.node_ids.get(label)
        if node_id is None:
            node_id = len(self.labels)
            self.node_ids[label] = node_id
            self.labels.append(label)
            self.adjacency.append([])
        return node_id

    def add_edge(
        self,
        u: int,
        v: int,
        capacity: Decimal,
        cost: int,
        *,
        is_debt: bool = False,
        debt_id: str | None = None,
    ) -> int:
        """Add ``u -> v`` and its reverse twin; return the forward handle."""
        handle = len(self.edges)
        self.edges.append(FlowEdge(
            tail=u, to=v, capacity=capacity, flow=ZERO, cost=cost,
            reverse=handle + 1, is_debt=is_debt, debt_id=debt_id,
        ))
        self.edges.append(FlowEdge(
            tail=v, to=u, capacity=ZERO, flow=ZERO, cost=-cost,
            reverse=handle, forward=False,
        ))
        self.adjacency[u].append(handle)
        self.adjacency[v].append(handle + 1)
        return handle

    def push(self, handle: int, amount: Decimal) -> None:
        edge = self.edges[handle]
        edge.flow += amount
        self.edges[edge.reverse].flow -= amount

    def copy(self) -> FlowNetwork:
        """Independent copy; flows on the copy can be consumed freely."""
        clone = FlowNetwork.__new__(FlowNetwork)
        clone.node_ids = dict(self.node_ids)
        clone.labels = list(self.labels)
        clone.adjacency = [list(handles) for handles in self.adjacency]
        clone.edges = [replace(edge) for edge in self.edges]
        return clone

    def label(self, node_id: int) -> str:
        return self.labels[node_id]

    def forward_edges(self) -> Iterator[tuple[int, FlowEdge]]:
        for handle, edge in enumerate(self.edges):
            if edge.forward:
                yield handle, edge

    def debt_edges(self) -> Iterator[FlowEdge]:
        return (edge for _, edge in self.forward_edges() if edge.is_debt)

    def has_outgoing_debt(self, node_id: int) -> bool:
        return any(self.edges[h].is_debt for h in self.adjacency[node_id])

    def flow_between(self, u: int, v: int) -> Decimal:
        """Total forward flow on ``u -> v`` edges."""
        return sum(
            (self.edges[h].flow for h in self.adjacency[u]
             if self.edges[h].forward and self.edges[h].to == v),
            ZERO,
        )

    def source_flow(self, label: str) -> Decimal:
        node_id = self.node_ids.get(label)
        return ZERO if node_id is None else self.flow_between(SOURCE_INDEX, node_id)

    def sink_flow(self, label: str) -> Decimal:
        node_id = self.node_ids.get(label)
        return ZERO if node_id is None else self.flow_between(node_id, SINK_INDEX)

    @property
    def node_count(self) -> int:
        return len(self.labels)

    @property
    def edge_count(self) -> int:
        """Number of logical (forward) edges."""
        return len(self.edges) // 2


def build_flow_network(
    companies: Sequence[Company],
    obligations: Sequence[Any],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> FlowNetwork:
    """
    Build the cascade network from companies and (netted) obligations.

    Preconditions:
        Inputs passed boundary validation.  Obligations should be acyclic;
        otherwise the solver stops on a negative cycle.
    """
    network = FlowNetwork()
    for company in companies:
        network.node(company.id)
    for obligation in obligations:
        network.node(obligation.source)
        network.node(obligation.target)

    for company in companies:
        node_id = network.node(company.id)
        spendable = company.spendable_cash
        if spendable > settings.epsilon:
            network.add_edge(SOURCE_INDEX, node_id, spendable, 0)
        network.add_edge(node_id, SINK_INDEX, settings.infinite_capacity, 0)

    skipped = 0
    for obligation in obligations:
        amount = to_amount(obligation.amount)
        if obligation.source == obligation.target or amount <= settings.epsilon:
            skipped += 1
            continue
        network.add_edge(
            network.node(obligation.source),
            network.node(obligation.target),
            amount,
            DEBT_EDGE_COST,
            is_debt=True,
            debt_id=obligation.id,
        )

    logger.debug("flow_network_built", extra={
        "node_count": network.node_count,
        "edge_count": network.edge_count,
        "skipped_obligations": skipped,
    })
    return network


def check_cash_connectivity(
    network: FlowNetwork,
    companies: Sequence[Company],
    trail: AuditTrail,
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> int:
    """
    Report, per cash-holding company, whether its cash can enter a chain.

    A company with spendable cash but no outgoing debt edge has trapped
    cash.  That is a legitimate no-op, not an error.

    Returns:
        Number of cash-holding companies with at least one outgoing debt.
    """
    connected = 0
    cash_holders = [c for c in companies if c.spendable_cash > settings.epsilon]
    for company in cash_holders:
        if network.has_outgoing_debt(network.node(company.id)):
            connected += 1
            trail.emit(
                AuditEventKind.CASH_NODE_CONNECTED,
                company_id=company.id,
                balance=company.balance,
            )
        else:
            trail.emit(
                AuditEventKind.CASH_TRAPPED,
                company_id=company.id,
                balance=company.balance,
            )
    if cash_holders and connected == 0:
        trail.emit(AuditEventKind.CASCADE_BLOCKED, cash_holder_count=len(cash_holders))
        logger.info("cascade_blocked_no_connected_cash", extra={
            "cash_holder_count": len(cash_holders),
        })
    return connected
