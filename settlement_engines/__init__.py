"""
Module: settlement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    settlement engines.  This is the canonical import surface for
    ``settlement_services``.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import settlement_kernel (and sibling engine modules).
    MUST NOT import settlement_services or settlement_config.

Invariants enforced:
    - Purity: engines never read files, clocks or random sources; ids come
      from an injected ``IdGenerator``.
    - Decimal-only arithmetic for amounts.
    - Determinism: identical inputs in identical order produce identical
      outputs.

Audit relevance:
    Every public engine entry point is traced via ``@traced_engine``,
    emitting SETTLEMENT_ENGINE_TRACE log records.

Usage:
    from settlement_engines import net_cycles, cascade_optimize

    netted = net_cycles(companies, obligations)
    plan = cascade_optimize(companies, netted.transactions,
                            original_total_debt=netted.original_total)
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("engines")

from settlement_engines.cascade import CascadeResult, cascade_optimize
from settlement_engines.flow_decomposition import (
    DebtReconciliation,
    SettlementChain,
    compute_final_balances,
    decompose_flow,
    derive_transactions,
)
from settlement_engines.flow_network import (
    SUPER_SINK,
    SUPER_SOURCE,
    FlowEdge,
    FlowNetwork,
    build_flow_network,
    check_cash_connectivity,
)
from settlement_engines.min_cost_flow import (
    FlowSolution,
    SolverTermination,
    find_shortest_path,
    has_profitable_path,
    solve_min_cost_flow,
)
from settlement_engines.netting import (
    CycleRecord,
    NettingResult,
    find_cycle,
    has_cycle,
    net_cycles,
)
from settlement_engines.obligation_graph import (
    AdjacentDebt,
    ObligationGraph,
    WorkingObligation,
    net_positions,
    total_debt,
)
from settlement_engines.pooling import PoolingResult, calculate_max_pooling

__all__ = [
    # Obligation graph
    "AdjacentDebt",
    "ObligationGraph",
    "WorkingObligation",
    "net_positions",
    "total_debt",
    # Netting
    "CycleRecord",
    "NettingResult",
    "find_cycle",
    "has_cycle",
    "net_cycles",
    # Flow network
    "SUPER_SOURCE",
    "SUPER_SINK",
    "FlowEdge",
    "FlowNetwork",
    "build_flow_network",
    "check_cash_connectivity",
    # Min-cost flow
    "FlowSolution",
    "SolverTermination",
    "find_shortest_path",
    "has_profitable_path",
    "solve_min_cost_flow",
    # Decomposition & reporting
    "DebtReconciliation",
    "SettlementChain",
    "compute_final_balances",
    "decompose_flow",
    "derive_transactions",
    # Cascade
    "CascadeResult",
    "cascade_optimize",
    # Pooling
    "PoolingResult",
    "calculate_max_pooling",
]

logger.debug("engines_package_loaded", extra={
    "modules": [
        "obligation_graph", "netting", "flow_network", "min_cost_flow",
        "flow_decomposition", "cascade", "pooling",
    ],
})
