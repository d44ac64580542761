"""
Tests for the pure sufficiency math.

accumulate_requirements / find_shortages / find_duplicates run without a
database; the orchestrator-level behavior is covered in tests/services.
"""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest

from stock_kernel.domain.sufficiency import (
    Requirement,
    Shortage,
    accumulate_requirements,
    find_duplicates,
    find_shortages,
)


class TestAccumulateRequirements:
    """Per-item totals across request lines."""

    def test_sums_same_key(self):
        reqs = [
            Requirement("stp", "Standing pouch", Decimal("500")),
            Requirement("ctn", "Carton 50", Decimal("10")),
            Requirement("stp", "Standing pouch", Decimal("5")),
        ]

        totals = accumulate_requirements(reqs)

        assert [(r.key, r.quantity) for r in totals] == [
            ("stp", Decimal("505")),
            ("ctn", Decimal("10")),
        ]

    def test_keeps_first_seen_order(self):
        reqs = [
            Requirement("b", "B", Decimal("1")),
            Requirement("a", "A", Decimal("1")),
            Requirement("b", "B", Decimal("1")),
        ]
        assert [r.key for r in accumulate_requirements(reqs)] == ["b", "a"]

    def test_keeps_first_name(self):
        reqs = [
            Requirement("x", "first", Decimal("1")),
            Requirement("x", "second", Decimal("2")),
        ]
        (total,) = accumulate_requirements(reqs)
        assert total.item_name == "first"
        assert total.quantity == Decimal("3")

    def test_empty(self):
        assert accumulate_requirements([]) == []

    def test_exact_decimal_arithmetic(self):
        reqs = [Requirement("x", "X", Decimal("0.1")) for _ in range(3)]
        (total,) = accumulate_requirements(reqs)
        assert total.quantity == Decimal("0.3")


class TestFindShortages:
    """Comparison against available balances."""

    def test_no_shortage_when_equal(self):
        reqs = [Requirement("x", "X", Decimal("100"))]
        assert find_shortages(reqs, {"x": Decimal("100")}) == []

    def test_short_by_one(self):
        reqs = [Requirement("x", "X", Decimal("101"))]

        (shortage,) = find_shortages(reqs, {"x": Decimal("100")})

        assert shortage.item_name == "X"
        assert shortage.required == Decimal("101")
        assert shortage.available == Decimal("100")
        assert shortage.shortage == Decimal("1")
        assert shortage.item_id == "x"

    def test_missing_balance_is_zero(self):
        reqs = [Requirement("x", "X", Decimal("5"))]
        (shortage,) = find_shortages(reqs, {})
        assert shortage.available == Decimal("0")
        assert shortage.shortage == Decimal("5")

    def test_negative_balance_reports_full_gap(self):
        reqs = [Requirement("x", "X", Decimal("5"))]
        (shortage,) = find_shortages(reqs, {"x": Decimal("-2")})
        assert shortage.shortage == Decimal("7")

    def test_reports_every_short_item(self):
        reqs = [
            Requirement("a", "A", Decimal("10")),
            Requirement("b", "B", Decimal("10")),
            Requirement("c", "C", Decimal("10")),
        ]
        available = {"a": Decimal("1"), "b": Decimal("50"), "c": Decimal("9")}

        shortages = find_shortages(reqs, available)

        assert [s.item_name for s in shortages] == ["A", "C"]


class TestFindDuplicates:

    def test_no_duplicates(self):
        assert find_duplicates(["A", "B", "C"]) == []

    def test_each_duplicate_reported_once(self):
        assert find_duplicates(["A", "B", "A", "A", "B", "C"]) == ["A", "B"]

    def test_accepts_generator(self):
        assert find_duplicates(k for k in (1, 2, 1)) == [1]


class TestShortageValue:

    def test_frozen(self):
        s = Shortage("X", Decimal("2"), Decimal("1"))
        with pytest.raises(FrozenInstanceError):
            s.required = Decimal("5")
