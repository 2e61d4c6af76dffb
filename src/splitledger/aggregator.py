"""Fold expenses into one net balance per participant."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from .allocator import allocate_cents, from_cents, to_cents
from .models import (
    Balance,
    Expense,
    Member,
    MemberResolution,
    ResolvedMembers,
    UnresolvedMembers,
)

logger = logging.getLogger(__name__)

MemberResolver = Callable[[str], MemberResolution]


@dataclass
class _Tally:
    """Running totals for one participant, in cents."""

    participant_id: str
    name: str | None = None
    paid_cents: int = 0
    owed_cents: int = 0

    def to_balance(self) -> Balance:
        return Balance(
            participant_id=self.participant_id,
            name=self.name or self.participant_id,
            paid=from_cents(self.paid_cents),
            owed=from_cents(self.owed_cents),
            net=from_cents(self.paid_cents - self.owed_cents),
        )


class _Ledger:
    """Participant tallies keyed by ID, kept in first-reference order."""

    def __init__(self):
        self.tallies: dict[str, _Tally] = {}

    def tally(self, participant_id: str, name: str | None = None) -> _Tally:
        entry = self.tallies.get(participant_id)
        if entry is None:
            entry = _Tally(participant_id=participant_id)
            self.tallies[participant_id] = entry
        if name and not entry.name:
            entry.name = name
        return entry


def resolve_safely(resolver: MemberResolver, group_id: str) -> MemberResolution:
    """
    Run a member resolver, turning any failure into UnresolvedMembers.

    Resolution problems must never abort aggregation, so exceptions raised
    by the store are logged and downgraded to the payer-only fallback.
    """
    try:
        return resolver(group_id)
    except Exception as e:
        logger.warning(f"Member resolution failed for group {group_id}: {e}")
        return UnresolvedMembers(reason=str(e) or type(e).__name__)


def resolve_split_cents(
    expense: Expense, resolver: MemberResolver
) -> list[tuple[str, str | None, int]]:
    """
    Determine the (participant_id, name, cents) shares used for an expense.

    Explicit splits win. Otherwise the amount is divided equally across the
    expense group's members; with no group or no resolvable members, the
    payer carries the whole amount.
    """
    if expense.splits:
        return [
            (split.participant_id, split.participant_name, to_cents(split.amount))
            for split in expense.splits
        ]

    total_cents = to_cents(expense.amount)
    members: list[Member] = []

    if expense.group_id is not None:
        resolution = resolve_safely(resolver, expense.group_id)
        if isinstance(resolution, ResolvedMembers):
            members = resolution.members
        else:
            logger.debug(
                f"Group {expense.group_id} unresolved ({resolution.reason}), "
                f"expense {expense.id} falls back to payer"
            )

    if not members:
        logger.debug(f"Expense {expense.id}: payer {expense.payer_id} is sole participant")
        return [(expense.payer_id, expense.payer_name, total_cents)]

    shares = allocate_cents(total_cents, len(members))
    return [
        (member.id, member.name, share)
        for member, share in zip(members, shares, strict=True)
    ]


def _fold(expenses: Iterable[Expense], resolver: MemberResolver) -> _Ledger:
    ledger = _Ledger()
    for expense in expenses:
        ledger.tally(expense.payer_id, expense.payer_name).paid_cents += to_cents(
            expense.amount
        )
        for participant_id, name, cents in resolve_split_cents(expense, resolver):
            ledger.tally(participant_id, name).owed_cents += cents
    return ledger


def aggregate(
    expenses: Iterable[Expense], resolver: MemberResolver
) -> dict[str, Balance]:
    """
    Fold expenses into one Balance per participant.

    Args:
        expenses: Expenses to aggregate (typically one group's expenses)
        resolver: Callable returning the members of a group

    Returns:
        Mapping of participant_id -> Balance, in first-reference order
    """
    ledger = _fold(expenses, resolver)
    return {
        participant_id: tally.to_balance()
        for participant_id, tally in ledger.tallies.items()
    }


def aggregate_for_participant(
    expenses: Iterable[Expense], resolver: MemberResolver, participant_id: str
) -> Balance:
    """Balance of a single participant across any set of expenses."""
    balances = aggregate(expenses, resolver)
    if participant_id in balances:
        return balances[participant_id]
    return Balance(participant_id=participant_id, name=participant_id)
