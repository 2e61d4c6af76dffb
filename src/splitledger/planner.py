"""Greedy settlement planning: turn net balances into pairwise transfers."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from .allocator import from_cents, to_cents
from .models import Balance, Settlement

logger = logging.getLogger(__name__)

# A remaining balance within one cent of zero counts as settled
TOLERANCE_CENTS = 1


@dataclass
class _Position:
    participant_id: str
    name: str
    cents: int


def plan(balances: Iterable[Balance]) -> list[Settlement]:
    """
    Compute the transfers that bring every balance to zero.

    Creditors are matched largest-first against debtors largest-first with a
    two-pointer sweep. Each step settles min(credit, debt), so every step
    closes out at least one side and the result has at most
    creditors + debtors - 1 transfers. This is a deterministic heuristic,
    not a minimum-transaction solver.

    Args:
        balances: Net balances (sum should be ~0 for a closed group)

    Returns:
        Settlements in sweep order (debtor pays creditor)
    """
    positions = [
        _Position(b.participant_id, b.name, to_cents(b.net)) for b in balances
    ]

    # sorted() is stable: equal balances keep their input order
    creditors = sorted(
        (p for p in positions if p.cents > 0), key=lambda p: p.cents, reverse=True
    )
    debtors = sorted((p for p in positions if p.cents < 0), key=lambda p: p.cents)

    settlements: list[Settlement] = []
    i = j = 0

    while i < len(creditors) and j < len(debtors):
        creditor = creditors[i]
        debtor = debtors[j]
        amount = min(creditor.cents, -debtor.cents)

        settlements.append(
            Settlement(
                source_id=debtor.participant_id,
                source_name=debtor.name,
                destination_id=creditor.participant_id,
                destination_name=creditor.name,
                amount=from_cents(amount),
            )
        )

        creditor.cents -= amount
        debtor.cents += amount

        if abs(creditor.cents) < TOLERANCE_CENTS:
            i += 1
        if abs(debtor.cents) < TOLERANCE_CENTS:
            j += 1

    leftover = sum(p.cents for p in creditors[i:]) + sum(p.cents for p in debtors[j:])
    if leftover:
        logger.debug(f"Unsettled residual after planning: {from_cents(leftover)}")

    return settlements


def apply_settlements(
    balances: Iterable[Balance], settlements: Iterable[Settlement]
) -> dict[str, Decimal]:
    """
    Net positions left after every settlement has been paid.

    Paying moves the source's net up and the destination's net down.

    Returns:
        Mapping of participant_id -> remaining net
    """
    remaining = {b.participant_id: to_cents(b.net) for b in balances}
    for settlement in settlements:
        cents = to_cents(settlement.amount)
        remaining[settlement.source_id] = remaining.get(settlement.source_id, 0) + cents
        remaining[settlement.destination_id] = (
            remaining.get(settlement.destination_id, 0) - cents
        )
    return {pid: from_cents(cents) for pid, cents in remaining.items()}
