"""Tests for the in-memory obligation graph."""

from decimal import Decimal

from settlement_engines.obligation_graph import (
    ObligationGraph,
    WorkingObligation,
    net_positions,
    total_debt,
    working_copy,
)
from settlement_kernel.domain.values import DebtObligation


class TestWorkingCopy:
    """Tests for working_copy."""

    def test_copies_are_independent(self, make_debts):
        debts = make_debts(("A", "B", 10))
        working = working_copy(debts)
        working[0].amount -= Decimal("4")

        assert working[0].amount == Decimal("6")
        assert debts[0].amount == Decimal("10")

    def test_residue_dropped(self):
        debts = [
            DebtObligation(id="D1", source="A", target="B", amount=Decimal("0.0000001")),
            DebtObligation(id="D2", source="B", target="C", amount=Decimal("3")),
        ]
        assert [w.id for w in working_copy(debts)] == ["D2"]


class TestObligationGraph:
    """Tests for adjacency construction."""

    def test_outgoing_keeps_input_order(self, make_debts):
        graph = ObligationGraph(working_copy(make_debts(
            ("A", "C", 1), ("A", "B", 2), ("B", "C", 3),
        )))

        assert [e.target for e in graph.outgoing("A")] == ["C", "B"]
        assert [e.edge_index for e in graph.outgoing("A")] == [0, 1]
        assert graph.edge_count == 3

    def test_unknown_node_has_no_edges(self):
        graph = ObligationGraph([])
        assert graph.outgoing("Z") == []

    def test_zeroed_edges_excluded(self):
        working = [
            WorkingObligation(id="D1", source="A", target="B", amount=Decimal("0")),
            WorkingObligation(id="D2", source="A", target="C", amount=Decimal("5")),
        ]
        graph = ObligationGraph(working)

        assert [e.target for e in graph.outgoing("A")] == ["C"]
        assert graph.obligation(1).id == "D2"


class TestAggregates:
    """Tests for net_positions and total_debt."""

    def test_net_positions_balance_to_zero(self, make_debts):
        positions = net_positions(make_debts(("A", "B", 10), ("B", "C", 4)))

        assert positions == {
            "A": Decimal("-10"),
            "B": Decimal("6"),
            "C": Decimal("4"),
        }
        assert sum(positions.values()) == 0

    def test_total_debt(self, make_debts):
        assert total_debt(make_debts(("A", "B", "1.5"), ("B", "A", 2))) == Decimal("3.5")
        assert total_debt([]) == Decimal("0")
