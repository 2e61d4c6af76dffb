"""Tests for the splitledger command line."""

from decimal import Decimal

import pytest
import typer
from typer.testing import CliRunner

from splitledger.cli import app, format_money, parse_split
from splitledger.db import Database

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the CLI at a throwaway database and working directory."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "cli.db"))


@pytest.fixture
def stored_ids(tmp_path):
    """Read back the IDs of recorded expenses, newest first."""

    def read():
        db = Database(tmp_path / "cli.db")
        try:
            return [expense.id for expense in db.list_expenses()]
        finally:
            db.close()

    return read


@pytest.fixture
def group():
    """A group with members Alice, Bob and Carol."""
    runner.invoke(app, ["create-group", "trip", "--name", "Trip"])
    for pid, name in [("a", "Alice"), ("b", "Bob"), ("c", "Carol")]:
        runner.invoke(app, ["add-member", "trip", pid, "--name", name])
    return "trip"


class TestCommands:
    """Tests for the CLI commands."""

    def test_balances_after_equal_split(self, group):
        result = runner.invoke(
            app, ["add-expense", group, "--payer", "a", "--amount", "60", "--title", "Food"]
        )
        assert result.exit_code == 0
        assert "3 shares" in result.stdout

        result = runner.invoke(app, ["balances", group])

        assert result.exit_code == 0
        assert "Alice" in result.stdout
        assert "Settlements" in result.stdout
        assert "20.00" in result.stdout

    def test_explicit_splits(self, group):
        result = runner.invoke(
            app,
            [
                "add-expense", group,
                "--payer", "a",
                "--amount", "10",
                "--split", "b=7.50",
                "--split", "c=2.50",
            ],
        )

        assert result.exit_code == 0
        assert "2 shares" in result.stdout

    def test_mismatched_splits_fail(self, group):
        result = runner.invoke(
            app,
            ["add-expense", group, "--payer", "a", "--amount", "10", "--split", "b=3"],
        )

        assert result.exit_code == 1
        assert "Split amounts must equal total amount" in result.stdout

    def test_bad_amount(self, group):
        result = runner.invoke(
            app, ["add-expense", group, "--payer", "a", "--amount", "lots"]
        )

        assert result.exit_code == 2
        assert "Not a valid amount" in result.stdout

    def test_balances_empty_group(self, group):
        result = runner.invoke(app, ["balances", group])

        assert result.exit_code == 0
        assert "No expenses recorded" in result.stdout

    def test_balances_missing_group(self):
        result = runner.invoke(app, ["balances", "nowhere"])

        assert result.exit_code == 1
        assert "Group not found" in result.stdout

    def test_add_member_to_missing_group(self):
        result = runner.invoke(app, ["add-member", "nowhere", "a"])

        assert result.exit_code == 1

    def test_overview(self, group):
        runner.invoke(app, ["add-expense", group, "--payer", "b", "--amount", "30"])

        result = runner.invoke(app, ["overview", "a"])

        assert result.exit_code == 0
        assert "Trip" in result.stdout
        assert "Bob" in result.stdout

    def test_overview_without_groups(self):
        result = runner.invoke(app, ["overview", "ghost"])

        assert result.exit_code == 0
        assert "not in any group" in result.stdout

    def test_overview_shows_net_across_groups(self, group):
        runner.invoke(app, ["add-expense", group, "--payer", "b", "--amount", "30"])

        result = runner.invoke(app, ["overview", "b"])

        assert result.exit_code == 0
        assert "Net across all groups" in result.stdout
        assert "20.00" in result.stdout

    def test_update_expense_changes_balances(self, group, stored_ids):
        runner.invoke(app, ["add-expense", group, "--payer", "a", "--amount", "30"])
        (expense_id,) = stored_ids()

        result = runner.invoke(
            app,
            ["update-expense", expense_id, "--amount", "12", "--split", "b=12"],
        )

        assert result.exit_code == 0
        assert "Updated" in result.stdout

        result = runner.invoke(app, ["balances", group])
        assert "12.00" in result.stdout
        assert "Carol" not in result.stdout

    def test_update_expense_mismatch_fails(self, group, stored_ids):
        runner.invoke(app, ["add-expense", group, "--payer", "a", "--amount", "30"])
        (expense_id,) = stored_ids()

        result = runner.invoke(app, ["update-expense", expense_id, "--split", "b=1"])

        assert result.exit_code == 1
        assert "Split amounts must equal total amount" in result.stdout

    def test_update_missing_expense(self):
        result = runner.invoke(app, ["update-expense", "nope", "--title", "x"])

        assert result.exit_code == 1
        assert "Expense not found" in result.stdout

    def test_delete_expense_settles_group(self, group, stored_ids):
        runner.invoke(app, ["add-expense", group, "--payer", "a", "--amount", "30"])
        (expense_id,) = stored_ids()

        result = runner.invoke(app, ["delete-expense", expense_id])

        assert result.exit_code == 0
        assert stored_ids() == []
        result = runner.invoke(app, ["balances", group])
        assert "No expenses recorded" in result.stdout

    def test_delete_missing_expense(self):
        result = runner.invoke(app, ["delete-expense", "nope"])

        assert result.exit_code == 1
        assert "Expense not found" in result.stdout

    def test_expenses_filtered_by_category(self, group):
        runner.invoke(
            app,
            ["add-expense", group, "--payer", "a", "--amount", "30",
             "--title", "Skis", "--category", "Travel"],
        )
        runner.invoke(
            app,
            ["add-expense", group, "--payer", "b", "--amount", "9",
             "--title", "Pizza", "--category", "Food"],
        )

        result = runner.invoke(app, ["expenses", "--category", "Food"])

        assert result.exit_code == 0
        assert "Pizza" in result.stdout
        assert "Skis" not in result.stdout

    def test_expenses_none_found(self):
        result = runner.invoke(app, ["expenses", "--since", "2030-01-01"])

        assert result.exit_code == 0
        assert "No expenses found" in result.stdout

    def test_summary(self, group):
        runner.invoke(
            app,
            ["add-expense", group, "--payer", "a", "--amount", "30", "--category", "Food"],
        )

        result = runner.invoke(app, ["summary", "a"])

        assert result.exit_code == 0
        assert "Expenses: 1" in result.stdout
        assert "30.00" in result.stdout
        assert "Food" in result.stdout


class TestHelpers:
    """Tests for CLI parsing and formatting helpers."""

    def test_parse_split(self):
        split = parse_split("alice=12.30")

        assert split.participant_id == "alice"
        assert split.amount == Decimal("12.30")

    def test_parse_split_requires_equals(self):
        with pytest.raises(typer.BadParameter):
            parse_split("alice")

    def test_format_money(self):
        assert format_money(Decimal("-85.02"), use_color=False) == "($85.02)"
        assert format_money(Decimal("1234.5"), use_color=False) == " $1,234.50 "
