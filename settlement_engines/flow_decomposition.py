"""
settlement_engines.flow_decomposition -- Settlement chains, transactions and balances.

Responsibility:
    Turn a solved cascade network into what a treasurer acts on:

    - ``decompose_flow``: source-to-sink chains ("A pays B, B pays C") for
      the narrative audit trail.  Works on a copy of the network and
      consumes its flow greedily.
    - ``derive_transactions``: one transaction per debt edge carrying flow.
      Built from aggregate edge flow, independent of the decomposition.
    - ``compute_final_balances``: ``balance - flow_from_source + flow_to_sink``.
    - ``report_chains``: chain-by-chain balance simulation into audit events.
    - ``reconcile``: global debt figures across netting and cascade.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - The solved network passed in is never modified.
    - Each decomposition step consumes strictly more than epsilon of flow,
      so the walk terminates even on a malformed flow.
    - ``final_remaining = original_total - netting_eliminated - cascade_eliminated``.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from settlement_engines.flow_network import SINK_INDEX, SOURCE_INDEX, FlowNetwork
from settlement_engines.min_cost_flow import FlowSolution
from settlement_kernel.domain.events import AuditEventKind, AuditTrail
from settlement_kernel.domain.identifiers import IdGenerator
from settlement_kernel.domain.settings import DEFAULT_SETTINGS
from settlement_kernel.domain.values import ZERO, Company, Transaction
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.flow_decomposition")


@dataclass(frozen=True)
class SettlementChain:
    """Cash leaving ``nodes[0]`` and passing along each following company.

    The last company keeps the cash.
    """

    nodes: tuple[str, ...]
    amount: Decimal

    @property
    def hops(self) -> int:
        return max(0, len(self.nodes) - 1)

    @property
    def debt_reduced(self) -> Decimal:
        return self.amount * self.hops


@dataclass(frozen=True)
class DebtReconciliation:
    original_total: Decimal
    cascade_input_total: Decimal
    netting_eliminated: Decimal
    cascade_eliminated: Decimal
    cash_used: Decimal

    @property
    def total_eliminated(self) -> Decimal:
        return self.netting_eliminated + self.cascade_eliminated

    @property
    def final_remaining(self) -> Decimal:
        return self.original_total - self.total_eliminated


class _Frame:
    """DFS frame: node, remaining need, chain so far, next adjacency slot."""

    __slots__ = ("node", "need", "chain", "position")

    def __init__(self, node: int, need: Decimal, chain: tuple[str, ...]):
        self.node = node
        self.need = need
        self.chain = chain
        self.position = 0


def _walk_order(network: FlowNetwork, node: int) -> list[int]:
    """Forward handles out of ``node``, debt edges before the sink edge.

    Taking debt edges first keeps chains whole instead of stopping cash at
    the first company that also has a sink edge with flow.
    """
    handles = [h for h in network.adjacency[node] if network.edges[h].forward]
    return sorted(handles, key=lambda h: not network.edges[h].is_debt)


def decompose_flow(
    network: FlowNetwork,
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> list[SettlementChain]:
    """Split the flow into chains, in source-edge order then depth-first."""
    residual = network.copy()
    edges = residual.edges
    chains: list[SettlementChain] = []
    orders: dict[int, list[int]] = {}

    for handle in list(residual.adjacency[SOURCE_INDEX]):
        source_edge = edges[handle]
        if not source_edge.forward or source_edge.flow <= epsilon:
            continue
        amount = source_edge.flow
        source_edge.flow = ZERO
        start = source_edge.to
        frames = [_Frame(start, amount, (residual.label(start),))]

        while frames:
            frame = frames[-1]
            if frame.need <= epsilon:
                frames.pop()
                continue
            order = orders.get(frame.node)
            if order is None:
                order = orders[frame.node] = _walk_order(residual, frame.node)
            if frame.position >= len(order):
                # Stranded flow; only reachable if conservation is broken.
                logger.warning("flow_decomposition_stranded", extra={
                    "node": residual.label(frame.node),
                    "need": str(frame.need),
                })
                frames.pop()
                continue

            edge = edges[order[frame.position]]
            if edge.flow <= epsilon:
                frame.position += 1
                continue
            move = min(frame.need, edge.flow)
            edge.flow -= move
            frame.need -= move
            if edge.to == SINK_INDEX:
                chains.append(SettlementChain(nodes=frame.chain, amount=move))
            else:
                frames.append(_Frame(
                    edge.to, move, frame.chain + (residual.label(edge.to),),
                ))

    logger.debug("flow_decomposed", extra={"chain_count": len(chains)})
    return chains


def derive_transactions(
    network: FlowNetwork,
    id_generator: IdGenerator,
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> list[Transaction]:
    """One transaction per debt edge with positive flow, amount = edge flow."""
    transactions: list[Transaction] = []
    for node in range(network.node_count):
        for handle in network.adjacency[node]:
            edge = network.edges[handle]
            if edge.forward and edge.is_debt and edge.flow > epsilon:
                transactions.append(Transaction(
                    id=id_generator.next_id(),
                    source=network.label(node),
                    target=network.label(edge.to),
                    amount=edge.flow,
                ))
    return transactions


def compute_final_balances(
    network: FlowNetwork,
    companies: Sequence[Company],
) -> dict[str, Decimal]:
    return {
        c.id: c.balance - network.source_flow(c.id) + network.sink_flow(c.id)
        for c in companies
    }


def report_chains(
    chains: Sequence[SettlementChain],
    companies: Sequence[Company],
    trail: AuditTrail,
) -> dict[str, Decimal]:
    """Emit chain events and return the simulated balance of every company.

    The originator spends its cash, every receiver is credited, and every
    intermediate receiver immediately forwards what it received.  Chains
    without a debt hop move no money and are not reported.
    """
    balances = {c.id: c.balance for c in companies}
    step = 0
    chain_number = 0
    for chain in chains:
        if chain.hops == 0:
            continue
        chain_number += 1
        trail.emit(
            AuditEventKind.CHAIN_SETTLED,
            chain_number=chain_number,
            chain=chain.nodes,
            amount=chain.amount,
            debt_reduced=chain.debt_reduced,
        )

        originator = chain.nodes[0]
        balances[originator] = balances.get(originator, ZERO) - chain.amount
        step += 1
        trail.emit(
            AuditEventKind.CHAIN_FUNDS_COMMITTED,
            chain_number=chain_number,
            step=step,
            company_id=originator,
            amount=chain.amount,
            balance=balances[originator],
        )

        last_hop = len(chain.nodes) - 2
        for i, (payer, payee) in enumerate(zip(chain.nodes, chain.nodes[1:])):
            balances[payee] = balances.get(payee, ZERO) + chain.amount
            step += 1
            trail.emit(
                AuditEventKind.CHAIN_TRANSFER,
                chain_number=chain_number,
                step=step,
                source=payer,
                target=payee,
                amount=chain.amount,
                balance=balances[payee],
            )
            if i < last_hop:
                balances[payee] -= chain.amount
    return balances


def reconcile(
    original_total: Decimal,
    cascade_input_total: Decimal,
    solution: FlowSolution,
) -> DebtReconciliation:
    return DebtReconciliation(
        original_total=original_total,
        cascade_input_total=cascade_input_total,
        netting_eliminated=original_total - cascade_input_total,
        cascade_eliminated=solution.debt_reduced,
        cash_used=solution.total_flow,
    )
