"""Tests for folding expenses into balances."""

import logging
from decimal import Decimal

import pytest

from splitledger.aggregator import (
    aggregate,
    aggregate_for_participant,
    resolve_split_cents,
)
from splitledger.models import (
    Expense,
    Member,
    ResolvedMembers,
    Split,
    UnresolvedMembers,
)


def make_expense(
    id: str,
    amount: str,
    payer: str,
    splits: dict[str, str] | None = None,
    group_id: str | None = "g1",
) -> Expense:
    """Create an Expense for testing."""
    return Expense(
        id=id,
        amount=Decimal(amount),
        payer_id=payer,
        group_id=group_id,
        splits=[
            Split(participant_id=pid, amount=Decimal(share))
            for pid, share in (splits or {}).items()
        ],
    )


def members_resolver(*ids: str):
    """Resolver returning the given members for any group."""
    members = [Member(id=pid, name=pid.title()) for pid in ids]
    return lambda group_id: ResolvedMembers(members=members)


def unresolved(group_id: str):
    return UnresolvedMembers(reason="not found")


def failing(group_id: str):
    raise RuntimeError("store unavailable")


class TestExplicitSplits:
    """Expenses that carry their own splits."""

    def test_paid_and_owed_accumulate(self):
        """Payer is credited the amount; each participant owes their split."""
        expenses = [
            make_expense("e1", "60.00", "a", {"a": "20", "b": "20", "c": "20"}),
            make_expense("e2", "30.00", "b", {"a": "10", "b": "10", "c": "10"}),
        ]

        balances = aggregate(expenses, unresolved)

        assert balances["a"].paid == Decimal("60.00")
        assert balances["a"].owed == Decimal("30.00")
        assert balances["a"].net == Decimal("30.00")
        assert balances["b"].net == Decimal("0.00")
        assert balances["c"].paid == Decimal("0.00")
        assert balances["c"].net == Decimal("-30.00")

    def test_explicit_splits_skip_the_resolver(self):
        """The resolver is never consulted when splits are present."""
        expenses = [make_expense("e1", "10.00", "a", {"a": "4", "b": "6"})]

        balances = aggregate(expenses, failing)

        assert balances["b"].owed == Decimal("6.00")

    def test_payer_not_in_splits(self):
        """A payer who doesn't share the cost is owed all of it."""
        expenses = [make_expense("e1", "25.00", "a", {"b": "25.00"})]

        balances = aggregate(expenses, unresolved)

        assert balances["a"].net == Decimal("25.00")
        assert balances["a"].owed == Decimal("0.00")
        assert balances["b"].net == Decimal("-25.00")

    def test_first_reference_order(self):
        """Balances are keyed in the order participants first appear."""
        expenses = [
            make_expense("e1", "9.00", "c", {"b": "3", "a": "3", "c": "3"}),
            make_expense("e2", "4.00", "d", {"a": "4"}),
        ]

        balances = aggregate(expenses, unresolved)

        assert list(balances) == ["c", "b", "a", "d"]


class TestDerivedSplits:
    """Expenses without splits are re-derived from group membership."""

    def test_equal_split_over_members(self):
        """No splits: the amount is allocated equally over resolved members."""
        expenses = [make_expense("e1", "100.00", "p1")]

        balances = aggregate(expenses, members_resolver("p1", "p2", "p3"))

        assert balances["p1"].owed == Decimal("33.34")
        assert balances["p2"].owed == Decimal("33.33")
        assert balances["p3"].owed == Decimal("33.33")
        assert balances["p1"].net == Decimal("66.66")

    def test_member_names_are_used(self):
        """Names come from membership when nothing else supplies them."""
        expenses = [make_expense("e1", "10.00", "p1")]

        balances = aggregate(expenses, members_resolver("p1", "p2"))

        assert balances["p2"].name == "P2"

    def test_unresolved_group_falls_back_to_payer(self):
        """Unresolved membership: payer owes themself, net zero."""
        expenses = [make_expense("e1", "10.00", "a")]

        balances = aggregate(expenses, unresolved)

        assert list(balances) == ["a"]
        assert balances["a"].paid == Decimal("10.00")
        assert balances["a"].owed == Decimal("10.00")
        assert balances["a"].net == Decimal("0.00")

    def test_empty_membership_falls_back_to_payer(self):
        """A group with zero members behaves like an unresolved one."""
        expenses = [make_expense("e1", "10.00", "a")]

        balances = aggregate(expenses, members_resolver())

        assert balances["a"].net == Decimal("0.00")

    def test_no_group_falls_back_to_payer(self):
        """An expense outside any group is self-settling."""
        expenses = [make_expense("e1", "10.00", "a", group_id=None)]

        assert resolve_split_cents(expenses[0], failing) == [("a", None, 1000)]

    def test_resolver_failure_does_not_abort(self, caplog):
        """A raising resolver is logged and the remaining expenses still count."""
        expenses = [
            make_expense("e1", "10.00", "a"),
            make_expense("e2", "20.00", "b", {"a": "20.00"}),
        ]

        with caplog.at_level(logging.WARNING):
            balances = aggregate(expenses, failing)

        assert "store unavailable" in caplog.text
        assert balances["a"].net == Decimal("-20.00")
        assert balances["b"].net == Decimal("20.00")


class TestMalformedInput:
    """Degenerate and malformed inputs produce well-defined results."""

    def test_empty_expense_list(self):
        assert aggregate([], unresolved) == {}

    @pytest.mark.parametrize("bad", ["abc", None, "", "NaN"])
    def test_non_numeric_split_coerced_to_zero(self, bad):
        """Malformed split amounts count as zero instead of failing."""
        expense = Expense(
            id="e1",
            amount=Decimal("10.00"),
            payer_id="a",
            group_id="g1",
            splits=[
                Split(participant_id="a", amount="10.00"),
                Split(participant_id="b", amount=bad),
            ],
        )

        balances = aggregate([expense], unresolved)

        assert balances["b"].owed == Decimal("0.00")
        assert balances["a"].net == Decimal("0.00")

    def test_zero_amount_expense(self):
        """A zero expense yields zero balances."""
        expenses = [make_expense("e1", "0.00", "a")]

        balances = aggregate(expenses, members_resolver("a", "b"))

        assert all(b.net == Decimal("0.00") for b in balances.values())


class TestZeroSum:
    """Nets of a closed group sum to zero."""

    def test_equal_splits_sum_to_zero(self):
        expenses = [
            make_expense("e1", "100.00", "a"),
            make_expense("e2", "17.03", "b"),
            make_expense("e3", "0.10", "c"),
            make_expense("e4", "55.55", "a"),
        ]

        balances = aggregate(expenses, members_resolver("a", "b", "c"))

        total = sum(b.net for b in balances.values())
        assert abs(total) <= Decimal("0.01") * len(expenses)


class TestAggregateForParticipant:
    """Single-participant view across expenses."""

    def test_returns_participant_balance(self):
        expenses = [
            make_expense("e1", "30.00", "a", {"a": "15", "b": "15"}, group_id="g1"),
            make_expense("e2", "8.00", "b", {"a": "4", "b": "4"}, group_id="g2"),
        ]

        balance = aggregate_for_participant(expenses, unresolved, "a")

        assert balance.net == Decimal("11.00")

    def test_unknown_participant_is_zero(self):
        balance = aggregate_for_participant([], unresolved, "nobody")

        assert balance.net == Decimal("0")
        assert balance.name == "nobody"

    def test_non_finite_decimal_split_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            split = Split(participant_id="b", amount=Decimal("NaN"))

        assert split.amount == Decimal("0")
        assert "non-finite split amount" in caplog.text
