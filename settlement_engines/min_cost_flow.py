"""
settlement_engines.min_cost_flow -- Successive shortest augmenting paths.

Responsibility:
    Push flow from SUPER_SOURCE to SUPER_SINK along the cheapest residual
    path until no path with negative cost remains.  With debt edges at
    cost -1 and every other edge at cost 0, the cheapest path is the one
    crossing the most debt, so cash is routed through the longest chains
    first.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Mutates only the
    ``FlowNetwork`` passed in, which the caller builds per invocation.

Method:
    1. Label-correcting shortest path (queue-based Bellman-Ford) over edges
       with residual capacity above epsilon; a node is requeued whenever its
       distance improves.
    2. Stop when the sink is unreachable or its distance is >= 0.  Zero-cost
       paths cancel no debt and are never taken.
    3. Otherwise push the bottleneck along the path and accumulate
       ``total_flow`` and ``min_cost``.

Safety valves:
    - A node enqueued more than ``node_count`` times in one search means a
      reachable negative cycle (netting was skipped).  The solver stops with
      ``SolverTermination.NEGATIVE_CYCLE``.
    - At most ``settings.augmentation_cap(node_count, edge_count)``
      augmentations run; reaching it ends with
      ``SolverTermination.ITERATION_CAP``.
    Both keep the flow pushed so far and emit a diagnostic audit event.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from settlement_engines.flow_network import SINK_INDEX, SOURCE_INDEX, FlowNetwork
from settlement_kernel.domain.events import AuditEventKind, AuditTrail
from settlement_kernel.domain.settings import DEFAULT_SETTINGS, EngineSettings
from settlement_kernel.domain.values import ZERO
from settlement_kernel.logging_config import get_logger

logger = get_logger("engines.min_cost_flow")


class SolverTermination(str, Enum):
    """Why the solver stopped."""

    OPTIMAL = "optimal"  # No negative-cost path left
    NEGATIVE_CYCLE = "negative_cycle"  # Residual graph has a negative cycle
    ITERATION_CAP = "iteration_cap"  # Augmentation cap reached


class NegativeCycleDetected(Exception):
    """Raised by ``find_shortest_path`` when relaxation does not settle."""

    def __init__(self, node: int):
        self.node = node
        super().__init__(f"Negative cycle reachable through node {node}")


@dataclass(frozen=True)
class ShortestPath:
    """Cheapest residual path; ``edges`` are handles in source-to-sink order."""

    distance: int
    edges: tuple[int, ...]


@dataclass(frozen=True)
class FlowSolution:
    total_flow: Decimal
    min_cost: Decimal
    augmentations: int
    termination: SolverTermination
    augmentation_cap: int

    @property
    def debt_reduced(self) -> Decimal:
        return -self.min_cost

    @property
    def is_optimal(self) -> bool:
        return self.termination == SolverTermination.OPTIMAL


def find_shortest_path(
    network: FlowNetwork,
    source: int = SOURCE_INDEX,
    sink: int = SINK_INDEX,
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> ShortestPath | None:
    """Queue-based Bellman-Ford over the residual graph.

    Returns None when ``sink`` is unreachable.

    Raises:
        NegativeCycleDetected: if some node is enqueued more than
            ``node_count`` times.
    """
    n = network.node_count
    edges = network.edges
    dist: list[int | None] = [None] * n
    parent_edge: list[int] = [-1] * n
    in_queue = [False] * n
    enqueued = [0] * n

    dist[source] = 0
    queue = deque([source])
    in_queue[source] = True

    while queue:
        u = queue.popleft()
        in_queue[u] = False
        base = dist[u]
        for handle in network.adjacency[u]:
            edge = edges[handle]
            if edge.residual <= epsilon:
                continue
            candidate = base + edge.cost
            current = dist[edge.to]
            if current is not None and candidate >= current:
                continue
            dist[edge.to] = candidate
            parent_edge[edge.to] = handle
            if not in_queue[edge.to]:
                enqueued[edge.to] += 1
                if enqueued[edge.to] > n:
                    raise NegativeCycleDetected(edge.to)
                queue.append(edge.to)
                in_queue[edge.to] = True

    if dist[sink] is None:
        return None

    path: list[int] = []
    node = sink
    while node != source:
        handle = parent_edge[node]
        path.append(handle)
        node = edges[handle].tail
        if len(path) > n:
            raise NegativeCycleDetected(node)
    path.reverse()
    return ShortestPath(distance=dist[sink], edges=tuple(path))


def solve_min_cost_flow(
    network: FlowNetwork,
    settings: EngineSettings = DEFAULT_SETTINGS,
    trail: AuditTrail | None = None,
) -> FlowSolution:
    """Augment ``network`` in place until no profitable path remains."""
    cap = settings.augmentation_cap(network.node_count, network.edge_count)
    total_flow = ZERO
    min_cost = ZERO
    augmentations = 0
    termination = SolverTermination.OPTIMAL

    while True:
        if augmentations >= cap:
            termination = SolverTermination.ITERATION_CAP
            if trail is not None:
                trail.emit(
                    AuditEventKind.AUGMENTATION_CAP_REACHED,
                    augmentation_cap=cap,
                    total_flow=total_flow,
                )
            logger.warning("min_cost_flow_augmentation_cap_reached", extra={
                "augmentation_cap": cap,
                "total_flow": str(total_flow),
            })
            break

        try:
            path = find_shortest_path(network, epsilon=settings.epsilon)
        except NegativeCycleDetected as exc:
            termination = SolverTermination.NEGATIVE_CYCLE
            if trail is not None:
                trail.emit(
                    AuditEventKind.NEGATIVE_CYCLE_DETECTED,
                    company_id=network.label(exc.node),
                    augmentations=augmentations,
                )
            logger.warning("min_cost_flow_negative_cycle", extra={
                "node": network.label(exc.node),
                "augmentations": augmentations,
            })
            break

        if path is None or path.distance >= 0:
            break

        push = min(network.edges[h].residual for h in path.edges)
        for handle in path.edges:
            network.push(handle, push)
        total_flow += push
        min_cost += push * path.distance
        augmentations += 1

        logger.debug("min_cost_flow_augmented", extra={
            "augmentation": augmentations,
            "path": [network.label(network.edges[h].to) for h in path.edges[:-1]],
            "push": str(push),
            "path_cost": path.distance,
        })

    logger.info("min_cost_flow_completed", extra={
        "total_flow": str(total_flow),
        "min_cost": str(min_cost),
        "augmentations": augmentations,
        "termination": termination.value,
    })
    return FlowSolution(
        total_flow=total_flow,
        min_cost=min_cost,
        augmentations=augmentations,
        termination=termination,
        augmentation_cap=cap,
    )


def has_profitable_path(
    network: FlowNetwork,
    epsilon: Decimal = DEFAULT_SETTINGS.epsilon,
) -> bool:
    """True if a negative-cost augmenting path still exists."""
    path = find_shortest_path(network, epsilon=epsilon)
    return path is not None and path.distance < 0
