"""Ledger engine: compose aggregation and planning over an expense snapshot.

The engine is a pure function of its inputs. It performs no I/O of its own,
keeps no state between calls and does no caching, so it can run
concurrently for different groups as long as each call receives a
consistent snapshot of expenses.
"""

import logging
from collections.abc import Sequence

from .aggregator import MemberResolver, aggregate
from .models import Expense, GroupLedger
from .planner import apply_settlements, plan

logger = logging.getLogger(__name__)


def compute_ledger(
    group_id: str, expenses: Sequence[Expense], resolver: MemberResolver
) -> GroupLedger:
    """
    Compute balances and settlements for one group.

    Args:
        group_id: The group the expenses belong to
        expenses: The group's full expense list
        resolver: Callable returning the members of a group

    Returns:
        GroupLedger with balances in first-reference order and settlements
        in sweep order
    """
    balances = list(aggregate(expenses, resolver).values())
    settlements = plan(balances)

    residual = {
        pid: net for pid, net in apply_settlements(balances, settlements).items() if net
    }
    if residual:
        logger.debug(f"Group {group_id}: residual after settlement {residual}")

    logger.debug(
        f"Group {group_id}: {len(expenses)} expenses -> "
        f"{len(balances)} balances, {len(settlements)} settlements"
    )

    return GroupLedger(group_id=group_id, balances=balances, settlements=settlements)
