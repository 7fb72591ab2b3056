"""
settlement_engines.pooling -- Cash pooling toward one target company.

Responsibility:
    Compute how much of the other companies' cash can reach ``target_id``
    when money may only travel along existing debt edges (a payer settles
    what it owes a creditor, the creditor passes it on).  Maximum flow via
    Edmonds-Karp: breadth-first augmenting paths, shortest first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Reuses the residual
    ``FlowNetwork`` arena from ``flow_network``; costs are ignored.

Invariants enforced:
    - Parallel debts between the same ordered pair share one edge with the
      summed capacity.
    - The target's own cash is not routed; it is added to ``total``.
    - ``steps`` carry the net flow per company pair, so opposing flows
      between two companies never both appear.

Failure modes:
    - InvalidInputError from boundary validation.
    - Blank or unknown ``target_id`` gives an empty result with total 0.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from settlement_engines.flow_network import SOURCE_INDEX, FlowNetwork
from settlement_engines.tracer import traced_engine
from settlement_kernel.domain.identifiers import IdGenerator, SequentialIdGenerator
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.validation import validate_settlement_inputs
from settlement_kernel.domain.values import ZERO, Company, Transaction, to_amount
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.pooling")


@dataclass(frozen=True)
class PoolingResult:
    steps: tuple[Transaction, ...]
    total: Decimal
    pooled: Decimal = ZERO
    augmentations: int = 0


def _bfs_path(network: FlowNetwork, sink: int, epsilon: Decimal) -> list[int] | None:
    """Fewest-edge residual path from the super source to ``sink``."""
    parent_edge: list[int | None] = [None] * network.node_count
    seen = [False] * network.node_count
    seen[SOURCE_INDEX] = True
    queue = deque([SOURCE_INDEX])
    while queue:
        u = queue.popleft()
        if u == sink:
            break
        for handle in network.adjacency[u]:
            edge = network.edges[handle]
            if not seen[edge.to] and edge.residual > epsilon:
                seen[edge.to] = True
                parent_edge[edge.to] = handle
                queue.append(edge.to)

    if not seen[sink]:
        return None
    path: list[int] = []
    node = sink
    while node != SOURCE_INDEX:
        handle = parent_edge[node]
        path.append(handle)
        node = network.edges[handle].tail
    path.reverse()
    return path


@traced_engine(
    "pooling", "1.0",
    fingerprint_fields=("companies", "obligations", "target_id"),
)
def calculate_max_pooling(
    companies: Sequence[Company],
    obligations: Sequence[Any],
    target_id: str,
    *,
    settings: EngineSettings | None = None,
    id_generator: IdGenerator | None = None,
) -> PoolingResult:
    """
    Maximize cash arriving at ``target_id`` from the rest of the group.

    Returns:
        PoolingResult where ``total`` is the target's own balance plus the
        pooled amount and ``steps`` are the per-pair transfers.
    """
    settings = settings or DEFAULT_SETTINGS
    by_id = validate_settlement_inputs(companies, obligations)
    if not target_id or target_id not in by_id:
        logger.warning("pooling_target_unknown", extra={"target_id": target_id})
        return PoolingResult(steps=(), total=ZERO)
    ids = id_generator or SequentialIdGenerator(settings.transaction_id_prefix)

    t0 = time.monotonic()
    network = FlowNetwork()
    for company in companies:
        node_id = network.node(company.id)
        spendable = company.spendable_cash
        if company.id != target_id and spendable > settings.epsilon:
            network.add_edge(SOURCE_INDEX, node_id, spendable, 0)

    capacities: dict[tuple[str, str], Decimal] = {}
    for obligation in obligations:
        if obligation.source == obligation.target:
            continue
        key = (obligation.source, obligation.target)
        capacities[key] = capacities.get(key, ZERO) + to_amount(obligation.amount)
    for (source, target), capacity in capacities.items():
        network.add_edge(network.node(source), network.node(target), capacity, 0)

    sink = network.node(target_id)
    pooled = ZERO
    augmentations = 0
    while True:
        path = _bfs_path(network, sink, settings.epsilon)
        if path is None:
            break
        push = min(network.edges[h].residual for h in path)
        for handle in path:
            network.push(handle, push)
        pooled += push
        augmentations += 1

    steps: list[Transaction] = []
    for source, target in capacities:
        u, v = network.node_ids[source], network.node_ids[target]
        net = network.flow_between(u, v) - network.flow_between(v, u)
        if net > settings.epsilon:
            steps.append(Transaction(
                id=ids.next_id(), source=source, target=target, amount=net,
            ))

    total = by_id[target_id].balance + pooled
    duration_ms = round((time.monotonic() - t0) * 1000, 2)
    logger.info("pooling_completed", extra={
        "target_id": target_id,
        "pooled": str(pooled),
        "total": str(total),
        "augmentations": augmentations,
        "duration_ms": duration_ms,
    })
    return PoolingResult(
        steps=tuple(steps),
        total=total,
        pooled=pooled,
        augmentations=augmentations,
    )
