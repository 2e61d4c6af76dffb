"""Pydantic domain models for SplitLedger."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

SplitMode = Literal["equal", "exact", "custom"]

ExpenseCategory = Literal[
    "Food",
    "Travel",
    "Rent",
    "Entertainment",
    "Utilities",
    "Shopping",
    "Healthcare",
    "Other",
]

# ============================================================================
# Expense Models (input)
# ============================================================================


class Split(BaseModel):
    """A participant's assigned share of one expense."""

    participant_id: str
    participant_name: str | None = None
    amount: Decimal = Decimal("0")
    percentage: Decimal | None = None  # informational only

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Decimal:
        """Coerce malformed amounts to zero instead of rejecting the split."""
        if isinstance(value, Decimal):
            if not value.is_finite():
                logger.warning(f"Coercing non-finite split amount {value!r} to 0")
                return Decimal("0")
            return value
        if isinstance(value, bool) or value is None:
            logger.warning(f"Coercing malformed split amount {value!r} to 0")
            return Decimal("0")
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            logger.warning(f"Coercing malformed split amount {value!r} to 0")
            return Decimal("0")
        if not amount.is_finite():
            logger.warning(f"Coercing non-finite split amount {value!r} to 0")
            return Decimal("0")
        return amount


class Expense(BaseModel):
    """A recorded expense, immutable as far as the ledger is concerned."""

    id: str
    amount: Decimal = Field(ge=0)
    payer_id: str
    payer_name: str | None = None
    group_id: str | None = None
    splits: list[Split] = Field(default_factory=list)
    split_mode: SplitMode = "equal"

    # Descriptive fields, never used in computation
    title: str = ""
    category: ExpenseCategory = "Other"
    expense_date: date | None = None
    notes: str = ""

    model_config = ConfigDict(frozen=True)


# ============================================================================
# Membership Models
# ============================================================================


class Member(BaseModel):
    """A resolved group member."""

    id: str
    name: str


class ResolvedMembers(BaseModel):
    """Membership lookup succeeded; members are in membership order."""

    kind: Literal["resolved"] = "resolved"
    members: list[Member]


class UnresolvedMembers(BaseModel):
    """Membership lookup found nothing usable (missing group, store failure)."""

    kind: Literal["unresolved"] = "unresolved"
    reason: str = "not found"


MemberResolution = ResolvedMembers | UnresolvedMembers

# ============================================================================
# Ledger Models (output)
# ============================================================================


class Balance(BaseModel):
    """A participant's net position across a set of expenses.

    net = paid - owed, rounded to 2 decimal places. Positive means the
    participant is owed money; negative means they owe.
    """

    participant_id: str
    name: str
    paid: Decimal = Decimal("0.00")
    owed: Decimal = Decimal("0.00")
    net: Decimal = Decimal("0.00")


class Settlement(BaseModel):
    """A directed transfer: source pays destination the amount."""

    source_id: str
    source_name: str
    destination_id: str
    destination_name: str
    amount: Decimal = Field(gt=0)


class GroupLedger(BaseModel):
    """Balances and settlements computed for one group."""

    group_id: str
    balances: list[Balance]
    settlements: list[Settlement]


class GroupSettlements(BaseModel):
    """The settlements of one group that involve a given participant."""

    group_id: str
    group_name: str
    settlements: list[Settlement]


class Group(BaseModel):
    """A group as stored by the expense store."""

    id: str
    name: str
    description: str = ""


class ExpenseSummary(BaseModel):
    """A participant's spending totals over a set of expenses.

    total_spent and total_owed are the participant's paid and owed amounts,
    balance is their net. category_breakdown sums what they paid per
    category.
    """

    participant_id: str
    total_spent: Decimal
    total_owed: Decimal
    balance: Decimal
    category_breakdown: dict[str, Decimal] = Field(default_factory=dict)
    expense_count: int = 0
