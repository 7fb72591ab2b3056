"""
Tests for the successive shortest path min-cost flow solver.

Covers:
- Longest chains are preferred (most negative path cost)
- Zero-cost paths are never augmented
- Capacity feasibility and flow conservation after solving
- Negative cycle and augmentation cap safety valves
"""

from decimal import Decimal

from settlement_engines.flow_network import (
    SINK_INDEX,
    SOURCE_INDEX,
    FlowNetwork,
    build_flow_network,
)
from settlement_engines.min_cost_flow import (
    SolverTermination,
    find_shortest_path,
    has_profitable_path,
    solve_min_cost_flow,
)
from settlement_kernel.domain.events import AuditEventKind, AuditTrail
from settlement_kernel.domain.settings import EngineSettings
from settlement_kernel.domain.values import Company


class _SingleAugmentation(EngineSettings):
    def augmentation_cap(self, node_count: int, edge_count: int) -> int:
        return 1


def _assert_feasible(network: FlowNetwork) -> None:
    for _, edge in network.forward_edges():
        assert Decimal("0") <= edge.flow <= edge.capacity


def _assert_conserved(network: FlowNetwork) -> None:
    inflow = [Decimal("0")] * network.node_count
    outflow = [Decimal("0")] * network.node_count
    for _, edge in network.forward_edges():
        outflow[edge.tail] += edge.flow
        inflow[edge.to] += edge.flow
    for node in range(2, network.node_count):
        assert inflow[node] == outflow[node], network.label(node)


class TestShortestPath:
    """Tests for find_shortest_path."""

    def test_unreachable_sink(self):
        network = FlowNetwork()
        network.node("A")
        assert find_shortest_path(network) is None

    def test_path_prefers_more_debt_edges(self, make_debts):
        companies = [Company(id="A", balance=Decimal("10")), Company(id="B"), Company(id="C")]
        network = build_flow_network(
            companies, make_debts(("A", "C", 10), ("A", "B", 10), ("B", "C", 10)),
        )

        path = find_shortest_path(network)

        assert path.distance == -2
        visited = [network.label(network.edges[h].to) for h in path.edges]
        assert visited == ["A", "B", "C", "__SUPER_SINK__"]


class TestSolveMinCostFlow:
    """Tests for solve_min_cost_flow."""

    def test_single_chain(self, make_debts):
        companies = [Company(id="A", balance=Decimal("100")), Company(id="B"), Company(id="C")]
        network = build_flow_network(companies, make_debts(("A", "B", 50), ("B", "C", 50)))

        solution = solve_min_cost_flow(network)

        assert solution.total_flow == Decimal("50")
        assert solution.min_cost == Decimal("-100")
        assert solution.debt_reduced == Decimal("100")
        assert solution.augmentations == 1
        assert solution.is_optimal
        _assert_feasible(network)
        _assert_conserved(network)

    def test_zero_cost_path_not_taken(self):
        """Cash with no outgoing debt stays put."""
        network = build_flow_network([Company(id="A", balance=Decimal("100"))], [])
        solution = solve_min_cost_flow(network)

        assert solution.total_flow == Decimal("0")
        assert network.source_flow("A") == Decimal("0")
        assert solution.termination == SolverTermination.OPTIMAL

    def test_cash_limits_flow(self, make_debts):
        companies = [Company(id="A", balance=Decimal("30")), Company(id="B")]
        network = build_flow_network(companies, make_debts(("A", "B", 50)))

        solution = solve_min_cost_flow(network)

        assert solution.total_flow == Decimal("30")
        assert network.flow_between(network.node_ids["A"], network.node_ids["B"]) == Decimal("30")

    def test_cash_never_exceeds_debt_bound(self, make_debts):
        companies = [
            Company(id="A", balance=Decimal("40")),
            Company(id="B", balance=Decimal("40")),
            Company(id="C"),
            Company(id="D"),
        ]
        debts = make_debts(("A", "C", 25), ("B", "C", 10), ("C", "D", 30))
        network = build_flow_network(companies, debts)

        solution = solve_min_cost_flow(network)

        assert solution.debt_reduced <= Decimal("65")
        assert solution.total_flow <= Decimal("80")
        assert not has_profitable_path(network)
        _assert_feasible(network)
        _assert_conserved(network)

    def test_no_profitable_path_left(self, make_debts):
        companies = [Company(id="A", balance=Decimal("5")), Company(id="B", balance=Decimal("5")), Company(id="C")]
        network = build_flow_network(companies, make_debts(("A", "B", 20), ("B", "C", 3)))
        solve_min_cost_flow(network)
        assert not has_profitable_path(network)


class TestSafetyValves:
    """Negative cycle and augmentation cap termination."""

    def test_negative_cycle_detected(self, make_debts):
        companies = [Company(id="A", balance=Decimal("100")), Company(id="B")]
        network = build_flow_network(companies, make_debts(("A", "B", 10), ("B", "A", 10)))
        trail = AuditTrail()

        solution = solve_min_cost_flow(network, trail=trail)

        assert solution.termination == SolverTermination.NEGATIVE_CYCLE
        assert solution.total_flow == Decimal("0")
        events = trail.of_kind(AuditEventKind.NEGATIVE_CYCLE_DETECTED)
        assert len(events) == 1
        assert events[0]["augmentations"] == 0
        assert events[0].is_diagnostic

    def test_augmentation_cap_returns_partial_flow(self, make_debts):
        companies = [
            Company(id="A", balance=Decimal("10")),
            Company(id="B"),
            Company(id="C", balance=Decimal("10")),
            Company(id="D"),
        ]
        network = build_flow_network(companies, make_debts(("A", "B", 10), ("C", "D", 10)))
        trail = AuditTrail()

        solution = solve_min_cost_flow(network, _SingleAugmentation(), trail)

        assert solution.termination == SolverTermination.ITERATION_CAP
        assert solution.augmentations == 1
        assert solution.total_flow == Decimal("10")
        event = trail.of_kind(AuditEventKind.AUGMENTATION_CAP_REACHED)[0]
        assert event["augmentation_cap"] == 1
        assert event["total_flow"] == Decimal("10")

    def test_default_cap_scales_with_network(self, make_debts):
        companies = [Company(id="A", balance=Decimal("1")), Company(id="B")]
        network = build_flow_network(companies, make_debts(("A", "B", 1)))
        solution = solve_min_cost_flow(network)
        assert solution.augmentation_cap == EngineSettings().augmentation_cap(
            network.node_count, network.edge_count,
        )
        assert network.edges[network.adjacency[SOURCE_INDEX][0]].flow == Decimal("1")
        assert network.sink_flow("B") == Decimal("1")
        assert network.flow_between(network.node_ids["B"], SINK_INDEX) == Decimal("1")
