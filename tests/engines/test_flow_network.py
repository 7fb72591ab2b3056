"""
Tests for the cascade flow network.

Covers:
- Node numbering (super source 0, super sink 1, companies in order)
- Source, sink and debt edge construction with reserves and self-loops
- Reverse twin bookkeeping on push and copy
- Cash connectivity diagnostics
"""

from decimal import Decimal

from settlement_engines.flow_network import (
    DEBT_EDGE_COST,
    SINK_INDEX,
    SOURCE_INDEX,
    SUPER_SINK,
    SUPER_SOURCE,
    FlowNetwork,
    build_flow_network,
    check_cash_connectivity,
)
from settlement_kernel.domain.events import AuditEventKind, AuditTrail
from settlement_kernel.domain.settings import EngineSettings
from settlement_kernel.domain.values import Company


class TestFlowNetwork:
    """Tests for the edge arena."""

    def test_reserved_nodes(self):
        network = FlowNetwork()
        assert network.label(SOURCE_INDEX) == SUPER_SOURCE
        assert network.label(SINK_INDEX) == SUPER_SINK
        assert network.node_count == 2

    def test_node_ids_stable(self):
        network = FlowNetwork()
        a = network.node("A")
        assert network.node("A") == a == 2
        assert network.node("B") == 3

    def test_add_edge_creates_twin(self):
        network = FlowNetwork()
        a, b = network.node("A"), network.node("B")
        handle = network.add_edge(a, b, Decimal("10"), -1, is_debt=True, debt_id="D1")

        forward, backward = network.edges[handle], network.edges[handle + 1]
        assert forward.reverse == handle + 1
        assert backward.reverse == handle
        assert backward.capacity == Decimal("0")
        assert backward.cost == 1
        assert not backward.forward
        assert forward.debt_id == "D1"
        assert network.edge_count == 1

    def test_push_updates_both_directions(self):
        network = FlowNetwork()
        a, b = network.node("A"), network.node("B")
        handle = network.add_edge(a, b, Decimal("10"), -1)
        network.push(handle, Decimal("4"))

        assert network.edges[handle].residual == Decimal("6")
        assert network.edges[handle + 1].residual == Decimal("4")
        assert network.flow_between(a, b) == Decimal("4")

    def test_copy_is_independent(self):
        network = FlowNetwork()
        a, b = network.node("A"), network.node("B")
        handle = network.add_edge(a, b, Decimal("10"), -1)
        network.push(handle, Decimal("4"))

        clone = network.copy()
        clone.push(handle, Decimal("6"))
        clone.node("C")

        assert network.edges[handle].flow == Decimal("4")
        assert clone.edges[handle].flow == Decimal("10")
        assert "C" not in network.node_ids


class TestBuildFlowNetwork:
    """Tests for build_flow_network."""

    def test_edges_for_cash_and_debts(self, make_debts):
        companies = [Company(id="A", balance=Decimal("100")), Company(id="B")]
        network = build_flow_network(companies, make_debts(("A", "B", 50)))

        a, b = network.node_ids["A"], network.node_ids["B"]
        source_edges = [network.edges[h] for h in network.adjacency[SOURCE_INDEX]]
        assert [(e.to, e.capacity) for e in source_edges] == [(a, Decimal("100"))]

        debt = list(network.debt_edges())
        assert len(debt) == 1
        assert (debt[0].tail, debt[0].to, debt[0].capacity) == (a, b, Decimal("50"))
        assert debt[0].cost == DEBT_EDGE_COST

        sinks = [e for _, e in network.forward_edges() if e.to == SINK_INDEX]
        assert {e.tail for e in sinks} == {a, b}
        assert all(e.capacity == EngineSettings().infinite_capacity for e in sinks)

    def test_reserve_reduces_source_capacity(self):
        companies = [
            Company(id="A", balance=Decimal("100"), min_reserved=Decimal("30")),
            Company(id="B", balance=Decimal("20"), min_reserved=Decimal("20")),
        ]
        network = build_flow_network(companies, [])

        source_edges = [network.edges[h] for h in network.adjacency[SOURCE_INDEX]]
        assert [e.capacity for e in source_edges] == [Decimal("70")]

    def test_self_loop_skipped(self, make_debts):
        companies = [Company(id="A", balance=Decimal("5"))]
        network = build_flow_network(companies, make_debts(("A", "A", 10)))
        assert list(network.debt_edges()) == []

    def test_custom_infinite_capacity(self):
        settings = EngineSettings(infinite_capacity=Decimal("5000"))
        network = build_flow_network([Company(id="A")], [], settings)
        sink_edge = network.edges[network.adjacency[network.node_ids["A"]][0]]
        assert sink_edge.capacity == Decimal("5000")


class TestCashConnectivity:
    """Tests for check_cash_connectivity diagnostics."""

    def test_connected_and_trapped(self, make_debts):
        companies = [
            Company(id="A", balance=Decimal("10")),
            Company(id="B"),
            Company(id="C", balance=Decimal("100")),
        ]
        network = build_flow_network(companies, make_debts(("A", "B", 5)))
        trail = AuditTrail()

        connected = check_cash_connectivity(network, companies, trail)

        assert connected == 1
        assert [(e.kind, e["company_id"]) for e in trail.events] == [
            (AuditEventKind.CASH_NODE_CONNECTED, "A"),
            (AuditEventKind.CASH_TRAPPED, "C"),
        ]

    def test_all_trapped_blocks_cascade(self, make_debts):
        companies = [Company(id="A"), Company(id="B"), Company(id="C", balance=Decimal("100"))]
        network = build_flow_network(companies, make_debts(("A", "B", 50), ("B", "C", 50)))
        trail = AuditTrail()

        assert check_cash_connectivity(network, companies, trail) == 0
        assert [e.kind for e in trail.events] == [
            AuditEventKind.CASH_TRAPPED,
            AuditEventKind.CASCADE_BLOCKED,
        ]
        assert trail.events[-1]["cash_holder_count"] == 1

    def test_no_cash_holders_emits_nothing(self, make_debts):
        companies = [Company(id="A"), Company(id="B")]
        network = build_flow_network(companies, make_debts(("A", "B", 50)))
        trail = AuditTrail()

        assert check_cash_connectivity(network, companies, trail) == 0
        assert len(trail) == 0
