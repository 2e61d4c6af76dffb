"""Service layer that composes the expense store and the ledger engine.

The store performs all I/O; the engine stays a pure function of the
snapshot it is handed.
"""

import logging
import uuid
from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from .aggregator import aggregate_for_participant
from .allocator import allocate, from_cents, quantize_money, to_cents
from .config import Settings
from .db import Database
from .engine import compute_ledger
from .exceptions import ExpenseNotFoundError, GroupNotFoundError, SplitMismatchError
from .models import (
    Expense,
    ExpenseCategory,
    ExpenseSummary,
    GroupLedger,
    GroupSettlements,
    ResolvedMembers,
    Split,
    SplitMode,
)

logger = logging.getLogger(__name__)


def validate_splits(
    amount: Decimal, splits: Sequence[Split], tolerance: Decimal = Decimal("0.01")
) -> None:
    """
    Check that explicit splits add up to the expense amount.

    Raises:
        SplitMismatchError: If the totals differ by more than tolerance
    """
    if not splits:
        return

    total = sum((split.amount for split in splits), Decimal("0"))
    if abs(total - amount) > tolerance:
        raise SplitMismatchError(expected=amount, actual=total)


class LedgerService:
    """Service for recording expenses and computing group ledgers."""

    def __init__(self, settings: Settings, database: Database):
        """Initialize the ledger service."""
        self.settings = settings
        self.db = database

    def compute_group_ledger(self, group_id: str) -> GroupLedger:
        """
        Compute balances and settlements for a group.

        Args:
            group_id: The group ID

        Returns:
            GroupLedger for the group's current expense set

        Raises:
            GroupNotFoundError: If the group does not exist
        """
        if self.db.get_group(group_id) is None:
            raise GroupNotFoundError(group_id)

        expenses = self.db.get_group_expenses(group_id)
        ledger = compute_ledger(group_id, expenses, self.db.resolve_members)

        logger.info(
            f"Computed ledger for group {group_id}: {len(expenses)} expenses, "
            f"{len(ledger.settlements)} settlements"
        )

        return ledger

    def compute_participant_overview(
        self, participant_id: str
    ) -> list[GroupSettlements]:
        """
        Collect, for every group the participant belongs to, the settlements
        they pay or receive.

        Args:
            participant_id: The participant ID

        Returns:
            One GroupSettlements per group, in group creation order
        """
        overview = []
        for group in self.db.list_groups_for_participant(participant_id):
            ledger = self.compute_group_ledger(group.id)
            overview.append(
                GroupSettlements(
                    group_id=group.id,
                    group_name=group.name,
                    settlements=[
                        s
                        for s in ledger.settlements
                        if participant_id in (s.source_id, s.destination_id)
                    ],
                )
            )

        logger.info(f"Built overview for {participant_id} across {len(overview)} groups")
        return overview

    def record_expense(
        self,
        amount: Decimal,
        payer_id: str,
        group_id: str | None = None,
        splits: Sequence[Split] | None = None,
        split_mode: SplitMode = "equal",
        title: str = "",
        category: ExpenseCategory = "Other",
        expense_date: date | None = None,
        notes: str = "",
    ) -> Expense:
        """
        Validate and store a new expense.

        Explicit splits must add up to the amount. Without splits, a group
        expense is divided equally across the group's members (extra cents
        to earlier members); if the group has no members, the payer carries
        the whole amount.

        Returns:
            The stored expense

        Raises:
            SplitMismatchError: If explicit splits don't add up
            GroupNotFoundError: If group_id names a missing group
        """
        splits = list(splits or [])
        validate_splits(amount, splits, self.settings.split_tolerance)

        if group_id is not None and self.db.get_group(group_id) is None:
            raise GroupNotFoundError(group_id)

        if not splits and group_id is not None:
            splits = self._equal_splits(amount, payer_id, group_id)

        expense = Expense(
            id=uuid.uuid4().hex,
            amount=quantize_money(amount),
            payer_id=payer_id,
            group_id=group_id,
            splits=splits,
            split_mode=split_mode,
            title=title,
            category=category,
            expense_date=expense_date or date.today(),
            notes=notes,
        )
        self.db.save_expense(expense)

        logger.info(
            f"Recorded expense {expense.id} ({expense.amount}) paid by {payer_id} "
            f"with {len(expense.splits)} splits"
        )

        return expense

    def get_expense(self, expense_id: str) -> Expense:
        """
        Get a single expense.

        Raises:
            ExpenseNotFoundError: If the expense does not exist
        """
        expense = self.db.get_expense(expense_id)
        if expense is None:
            raise ExpenseNotFoundError(expense_id)
        return expense

    def update_expense(
        self,
        expense_id: str,
        amount: Decimal | None = None,
        splits: Sequence[Split] | None = None,
        split_mode: SplitMode | None = None,
        title: str | None = None,
        category: ExpenseCategory | None = None,
        expense_date: date | None = None,
        notes: str | None = None,
    ) -> Expense:
        """
        Change fields of a stored expense; None leaves a field as it is.

        New splits must add up to the (new or existing) amount. When only
        the amount changes, an equal-split group expense is re-divided
        across the current members; any other stored splits must still add
        up to the new amount.

        Returns:
            The updated expense

        Raises:
            ExpenseNotFoundError: If the expense does not exist
            SplitMismatchError: If the resulting splits don't add up
        """
        existing = self.get_expense(expense_id)
        new_amount = amount if amount is not None else existing.amount
        changes: dict = {"amount": quantize_money(new_amount)}

        if splits:
            validate_splits(new_amount, splits, self.settings.split_tolerance)
            changes["splits"] = list(splits)
        elif amount is not None and amount != existing.amount and existing.splits:
            if existing.split_mode == "equal" and existing.group_id is not None:
                changes["splits"] = self._equal_splits(
                    new_amount, existing.payer_id, existing.group_id
                )
            else:
                validate_splits(
                    new_amount, existing.splits, self.settings.split_tolerance
                )

        for field, value in [
            ("split_mode", split_mode),
            ("title", title),
            ("category", category),
            ("expense_date", expense_date),
            ("notes", notes),
        ]:
            if value is not None:
                changes[field] = value

        expense = Expense.model_validate({**existing.model_dump(), **changes})
        self.db.update_expense(expense)

        logger.info(f"Updated expense {expense_id} ({expense.amount})")

        return expense

    def delete_expense(self, expense_id: str) -> None:
        """
        Delete an expense; balances reflect it on the next computation.

        Raises:
            ExpenseNotFoundError: If the expense does not exist
        """
        if not self.db.delete_expense(expense_id):
            raise ExpenseNotFoundError(expense_id)

        logger.info(f"Deleted expense {expense_id}")

    def list_expenses(
        self,
        group_id: str | None = None,
        participant_id: str | None = None,
        category: ExpenseCategory | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Expense]:
        """List expenses matching all given filters, newest first."""
        expenses = self.db.list_expenses(
            group_id=group_id,
            participant_id=participant_id,
            category=category,
            start=start,
            end=end,
        )
        logger.debug(f"Listed {len(expenses)} expenses")
        return expenses

    def summarize_participant(
        self,
        participant_id: str,
        group_id: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> ExpenseSummary:
        """
        Total what a participant paid and owes across groups.

        Covers every expense the participant paid or holds a split in,
        optionally limited to one group and a date range.

        Returns:
            ExpenseSummary with paid, owed, net and per-category spending
        """
        expenses = self.list_expenses(
            group_id=group_id, participant_id=participant_id, start=start, end=end
        )
        balance = aggregate_for_participant(
            expenses, self.db.resolve_members, participant_id
        )

        spent_by_category: dict[str, int] = {}
        for expense in expenses:
            spent = to_cents(expense.amount) if expense.payer_id == participant_id else 0
            spent_by_category[expense.category] = (
                spent_by_category.get(expense.category, 0) + spent
            )

        return ExpenseSummary(
            participant_id=participant_id,
            total_spent=balance.paid,
            total_owed=balance.owed,
            balance=balance.net,
            category_breakdown={
                category: from_cents(cents)
                for category, cents in spent_by_category.items()
            },
            expense_count=len(expenses),
        )

    def _equal_splits(self, amount: Decimal, payer_id: str, group_id: str) -> list[Split]:
        """Equal splits over a group's members, or the payer alone."""
        resolution = self.db.resolve_members(group_id)
        members = resolution.members if isinstance(resolution, ResolvedMembers) else []

        if not members:
            logger.info(f"Group {group_id} has no members, payer takes the full amount")
            return [Split(participant_id=payer_id, amount=quantize_money(amount))]

        return [
            Split(participant_id=participant_id, amount=share)
            for participant_id, share in allocate(amount, [m.id for m in members])
        ]
