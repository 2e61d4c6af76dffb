"""Custom exceptions for SplitLedger."""


class SplitLedgerError(Exception):
    """Base exception for all SplitLedger errors."""

    pass


class ConfigurationError(SplitLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(SplitLedgerError):
    """Raised when an expense is rejected before it reaches the ledger."""

    pass


class SplitMismatchError(ValidationError):
    """Raised when split amounts don't add up to the expense amount."""

    def __init__(self, expected, actual, message: str | None = None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message
            or f"Split amounts must equal total amount (expected {expected}, got {actual})"
        )


class AllocationError(SplitLedgerError):
    """Raised when the allocator is called with a negative amount or no participants."""

    pass


class GroupNotFoundError(SplitLedgerError):
    """Raised when a group does not exist in the expense store."""

    def __init__(self, group_id: str):
        self.group_id = group_id
        super().__init__(f"Group not found: {group_id}")


class ExpenseNotFoundError(SplitLedgerError):
    """Raised when an expense does not exist in the expense store."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")
