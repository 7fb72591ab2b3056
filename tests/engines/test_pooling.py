"""Tests for cash pooling toward a single target company."""

from decimal import Decimal

import pytest

from settlement_engines.pooling import PoolingResult, calculate_max_pooling
from settlement_kernel.domain.values import Company
from settlement_kernel.exceptions import UnknownCompanyError


def _steps(result: PoolingResult):
    return [(s.source, s.target, s.amount) for s in result.steps]


class TestCalculateMaxPooling:
    """Tests for calculate_max_pooling."""

    def test_direct_debtor_pays_target(self, make_companies, make_debts):
        result = calculate_max_pooling(
            make_companies(A=100, B=0), make_debts(("A", "B", 50)), "B",
        )

        assert result.pooled == Decimal("50")
        assert result.total == Decimal("50")
        assert _steps(result) == [("A", "B", Decimal("50"))]

    def test_bottleneck_limits_pool(self, make_companies, make_debts):
        result = calculate_max_pooling(
            make_companies(A=30, B=10, C=5),
            make_debts(("A", "B", 100), ("B", "C", 20)),
            "C",
        )

        assert result.pooled == Decimal("20")
        assert result.total == Decimal("25")
        assert _steps(result) == [
            ("A", "B", Decimal("10")),
            ("B", "C", Decimal("20")),
        ]
        assert result.augmentations == 2

    def test_parallel_debts_summed(self, make_companies, make_debts):
        result = calculate_max_pooling(
            make_companies(A=100, B=0),
            make_debts(("A", "B", 30), ("A", "B", 20)),
            "B",
        )

        assert result.pooled == Decimal("50")
        assert _steps(result) == [("A", "B", Decimal("50"))]

    def test_target_cash_not_routed(self, make_companies, make_debts):
        result = calculate_max_pooling(
            make_companies(A=100, B=0),
            make_debts(("A", "B", 50), ("B", "A", 10)),
            "A",
        )

        assert result.pooled == Decimal("0")
        assert result.total == Decimal("100")
        assert result.steps == ()

    def test_reserve_respected(self, make_debts):
        companies = [
            Company(id="A", balance=Decimal("100"), min_reserved=Decimal("90")),
            Company(id="B"),
        ]
        result = calculate_max_pooling(companies, make_debts(("A", "B", 50)), "B")
        assert result.pooled == Decimal("10")

    def test_self_loop_ignored(self, make_companies, make_debts):
        result = calculate_max_pooling(
            make_companies(A=10, B=0),
            make_debts(("A", "A", 99), ("A", "B", 4)),
            "B",
        )
        assert _steps(result) == [("A", "B", Decimal("4"))]

    @pytest.mark.parametrize("target", ["", "Z"])
    def test_unknown_target_gives_empty_result(self, make_companies, make_debts, target):
        result = calculate_max_pooling(
            make_companies(A=100, B=0), make_debts(("A", "B", 50)), target,
        )
        assert result == PoolingResult(steps=(), total=Decimal("0"))

    def test_invalid_obligation_raises(self, make_companies, make_debts):
        with pytest.raises(UnknownCompanyError):
            calculate_max_pooling(make_companies(A=1), make_debts(("A", "Q", 1)), "A")
