"""Cent-exact allocation of an amount across an ordered list of participants."""

from decimal import ROUND_HALF_UP, Decimal, localcontext

from .exceptions import AllocationError

CENT = Decimal("0.01")

# Headroom over the significant digits of an amount when quantizing
PRECISION_MARGIN = 6


def _precision_for(amount: Decimal) -> int:
    """Context precision large enough to quantize `amount` to whole cents."""
    return max(28, amount.adjusted() + PRECISION_MARGIN)


def to_cents(amount: Decimal) -> int:
    """
    Convert Decimal currency units to integer cents.
    Uses ROUND_HALF_UP for consistency.

    Args:
        amount: Currency amount as Decimal

    Returns:
        Amount in cents (integer)
    """
    amount = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = _precision_for(amount)
        cents = amount * 100
        return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_cents(cents: int) -> Decimal:
    """Convert integer cents back to a two-place Decimal."""
    with localcontext() as ctx:
        ctx.prec = max(28, len(str(abs(cents))) + PRECISION_MARGIN)
        return (Decimal(cents) / 100).quantize(CENT)


def quantize_money(amount: Decimal) -> Decimal:
    """Round a currency amount to two decimal places (ROUND_HALF_UP)."""
    amount = Decimal(amount)
    with localcontext() as ctx:
        ctx.prec = _precision_for(amount)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def allocate_cents(total_cents: int, count: int) -> list[int]:
    """
    Split an integer number of cents into `count` near-equal parts.

    The first `total_cents % count` parts receive one extra cent, so the
    parts always sum to `total_cents` and differ by at most one cent.
    """
    if count <= 0:
        raise AllocationError("Cannot allocate across zero participants")
    if total_cents < 0:
        raise AllocationError(f"Cannot allocate a negative amount: {total_cents} cents")

    base = total_cents // count
    remainder = total_cents - base * count
    return [base + 1 if idx < remainder else base for idx in range(count)]


def allocate(total: Decimal, participants: list[str]) -> list[tuple[str, Decimal]]:
    """
    Allocate an amount equally across participants, exact to the cent.

    Extra cents from the division go to the earliest-listed participants.

    Args:
        total: Amount to split (>= 0)
        participants: Ordered participant IDs (non-empty)

    Returns:
        List of (participant_id, amount) pairs in the given order

    Raises:
        AllocationError: If total is negative or participants is empty
    """
    if not participants:
        raise AllocationError("Cannot allocate across zero participants")
    if total < 0:
        raise AllocationError(f"Cannot allocate a negative amount: {total}")

    shares = allocate_cents(to_cents(total), len(participants))
    return [
        (participant, from_cents(share))
        for participant, share in zip(participants, shares, strict=True)
    ]
