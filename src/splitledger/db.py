"""SQLite expense store for SplitLedger."""

import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from .models import (
    Expense,
    Group,
    Member,
    MemberResolution,
    ResolvedMembers,
    Split,
    UnresolvedMembers,
)


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS participants (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_groups (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        # Membership order is the allocation order for equal splits
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS group_members (
                group_id TEXT NOT NULL REFERENCES expense_groups(id),
                participant_id TEXT NOT NULL REFERENCES participants(id),
                position INTEGER NOT NULL,
                added_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (group_id, participant_id)
            )
        """
        )

        # Amounts are stored as TEXT to keep Decimal precision
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                group_id TEXT REFERENCES expense_groups(id),
                payer_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                split_mode TEXT NOT NULL DEFAULT 'equal',
                title TEXT NOT NULL DEFAULT '',
                category TEXT NOT NULL DEFAULT 'Other',
                expense_date DATE,
                notes TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expense_splits (
                expense_id TEXT NOT NULL REFERENCES expenses(id),
                position INTEGER NOT NULL,
                participant_id TEXT NOT NULL,
                amount TEXT NOT NULL,
                percentage TEXT,
                PRIMARY KEY (expense_id, position)
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Participant operations
    # ========================================================================

    def save_participant(self, participant_id: str, name: str):
        """Create a participant or update their display name."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO participants (id, name) VALUES (?, ?)
            ON CONFLICT(id) DO UPDATE SET name = excluded.name
            """,
            (participant_id, name),
        )
        self.conn.commit()

    def get_participant_name(self, participant_id: str) -> str | None:
        """Get a participant's display name."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT name FROM participants WHERE id = ?", (participant_id,))
        row = cursor.fetchone()
        return str(row["name"]) if row else None

    # ========================================================================
    # Group operations
    # ========================================================================

    def create_group(self, group: Group):
        """Create a group."""
        cursor = self.conn.cursor()
        cursor.execute(
            "INSERT INTO expense_groups (id, name, description, created_at) VALUES (?, ?, ?, ?)",
            (group.id, group.name, group.description, datetime.now().isoformat()),
        )
        self.conn.commit()

    def get_group(self, group_id: str) -> Group | None:
        """Get a group by ID."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, name, description FROM expense_groups WHERE id = ?", (group_id,)
        )
        row = cursor.fetchone()
        if not row:
            return None

        return Group(id=row["id"], name=row["name"], description=row["description"])

    def add_group_member(self, group_id: str, participant_id: str) -> bool:
        """
        Append a participant to a group's membership.

        Returns:
            True if the participant was added, False if already a member
        """
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO group_members (group_id, participant_id, position, added_at)
            SELECT ?, ?, COALESCE(MAX(position), -1) + 1, ?
            FROM group_members WHERE group_id = ?
            ON CONFLICT(group_id, participant_id) DO NOTHING
            """,
            (group_id, participant_id, datetime.now().isoformat(), group_id),
        )
        self.conn.commit()
        return cursor.rowcount > 0

    def resolve_members(self, group_id: str) -> MemberResolution:
        """
        Resolve a group's members in membership order.

        Returns:
            ResolvedMembers (possibly empty) or UnresolvedMembers if the
            group does not exist
        """
        if self.get_group(group_id) is None:
            return UnresolvedMembers(reason=f"group {group_id} not found")

        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT gm.participant_id, p.name
            FROM group_members gm
            LEFT JOIN participants p ON p.id = gm.participant_id
            WHERE gm.group_id = ?
            ORDER BY gm.position
            """,
            (group_id,),
        )
        return ResolvedMembers(
            members=[
                Member(id=row["participant_id"], name=row["name"] or row["participant_id"])
                for row in cursor.fetchall()
            ]
        )

    def list_groups_for_participant(self, participant_id: str) -> list[Group]:
        """Get all groups a participant is a member of."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT g.id, g.name, g.description
            FROM expense_groups g
            JOIN group_members gm ON gm.group_id = g.id
            WHERE gm.participant_id = ?
            ORDER BY g.rowid
            """,
            (participant_id,),
        )
        return [
            Group(id=row["id"], name=row["name"], description=row["description"])
            for row in cursor.fetchall()
        ]

    # ========================================================================
    # Expense operations
    # ========================================================================

    def save_expense(self, expense: Expense):
        """Save an expense and its splits atomically."""
        with self.conn:
            self.conn.execute(
                """
                INSERT INTO expenses (
                    id, group_id, payer_id, amount, split_mode, title,
                    category, expense_date, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    expense.id,
                    expense.group_id,
                    expense.payer_id,
                    str(expense.amount),
                    expense.split_mode,
                    expense.title,
                    expense.category,
                    expense.expense_date.isoformat() if expense.expense_date else None,
                    expense.notes,
                    datetime.now().isoformat(),
                ),
            )
            self._insert_splits(expense)

    def _insert_splits(self, expense: Expense):
        """Insert an expense's split rows; caller owns the transaction."""
        self.conn.executemany(
            """
            INSERT INTO expense_splits (
                expense_id, position, participant_id, amount, percentage
            ) VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    expense.id,
                    position,
                    split.participant_id,
                    str(split.amount),
                    str(split.percentage) if split.percentage is not None else None,
                )
                for position, split in enumerate(expense.splits)
            ],
        )

    def update_expense(self, expense: Expense) -> bool:
        """
        Overwrite a stored expense and replace its splits atomically.

        Returns:
            True if the expense existed and was updated
        """
        with self.conn:
            cursor = self.conn.execute(
                """
                UPDATE expenses SET
                    group_id = ?, payer_id = ?, amount = ?, split_mode = ?,
                    title = ?, category = ?, expense_date = ?, notes = ?
                WHERE id = ?
                """,
                (
                    expense.group_id,
                    expense.payer_id,
                    str(expense.amount),
                    expense.split_mode,
                    expense.title,
                    expense.category,
                    expense.expense_date.isoformat() if expense.expense_date else None,
                    expense.notes,
                    expense.id,
                ),
            )
            if cursor.rowcount == 0:
                return False

            self.conn.execute(
                "DELETE FROM expense_splits WHERE expense_id = ?", (expense.id,)
            )
            self._insert_splits(expense)
        return True

    def delete_expense(self, expense_id: str) -> bool:
        """
        Delete an expense and its splits.

        Returns:
            True if the expense existed
        """
        with self.conn:
            self.conn.execute(
                "DELETE FROM expense_splits WHERE expense_id = ?", (expense_id,)
            )
            cursor = self.conn.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        return cursor.rowcount > 0

    def get_expense(self, expense_id: str) -> Expense | None:
        """Get a single expense with its splits."""
        expenses = self._select_expenses("e.id = ?", (expense_id,))
        return expenses[0] if expenses else None

    def get_group_expenses(self, group_id: str) -> list[Expense]:
        """
        Get all expenses of a group, with splits, in recording order.

        Expenses and splits are read with a single query so the result is
        one consistent snapshot.
        """
        return self._select_expenses("e.group_id = ?", (group_id,))

    def list_expenses(
        self,
        group_id: str | None = None,
        participant_id: str | None = None,
        category: str | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Expense]:
        """
        List expenses matching all given filters, newest first.

        Args:
            group_id: Only expenses of this group
            participant_id: Only expenses this participant paid or shares in
            category: Only expenses in this category
            start: Only expenses dated on or after this date
            end: Only expenses dated on or before this date
        """
        clauses: list[str] = []
        params: list[str] = []

        if group_id is not None:
            clauses.append("e.group_id = ?")
            params.append(group_id)
        if participant_id is not None:
            clauses.append(
                "(e.payer_id = ? OR e.id IN "
                "(SELECT expense_id FROM expense_splits WHERE participant_id = ?))"
            )
            params.extend([participant_id, participant_id])
        if category is not None:
            clauses.append("e.category = ?")
            params.append(category)
        if start is not None:
            clauses.append("e.expense_date >= ?")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("e.expense_date <= ?")
            params.append(end.isoformat())

        return self._select_expenses(
            " AND ".join(clauses) or "1 = 1",
            tuple(params),
            order_by="e.expense_date DESC, e.seq DESC",
        )

    def _select_expenses(
        self, where: str, params: tuple, order_by: str = "e.seq"
    ) -> list[Expense]:
        """Run the joined expense/split query and group rows per expense."""
        cursor = self.conn.cursor()
        cursor.execute(
            f"""
            SELECT e.id, e.group_id, e.payer_id, payer.name AS payer_name,
                   e.amount, e.split_mode, e.title, e.category,
                   e.expense_date, e.notes,
                   s.participant_id, sp.name AS participant_name,
                   s.amount AS split_amount, s.percentage
            FROM expenses e
            LEFT JOIN participants payer ON payer.id = e.payer_id
            LEFT JOIN expense_splits s ON s.expense_id = e.id
            LEFT JOIN participants sp ON sp.id = s.participant_id
            WHERE {where}
            ORDER BY {order_by}, s.position
            """,
            params,
        )

        rows_by_expense: dict[str, list[sqlite3.Row]] = {}
        for row in cursor.fetchall():
            rows_by_expense.setdefault(row["id"], []).append(row)

        return [_expense_from_rows(rows) for rows in rows_by_expense.values()]


def _expense_from_rows(rows: list[sqlite3.Row]) -> Expense:
    """Build an Expense from its joined expense/split rows."""
    head = rows[0]
    splits = [
        Split(
            participant_id=row["participant_id"],
            participant_name=row["participant_name"],
            amount=row["split_amount"],
            percentage=Decimal(row["percentage"]) if row["percentage"] else None,
        )
        for row in rows
        if row["participant_id"] is not None
    ]

    return Expense(
        id=head["id"],
        group_id=head["group_id"],
        payer_id=head["payer_id"],
        payer_name=head["payer_name"],
        amount=Decimal(head["amount"]),
        split_mode=head["split_mode"],
        title=head["title"],
        category=head["category"],
        expense_date=date.fromisoformat(head["expense_date"])
        if head["expense_date"]
        else None,
        notes=head["notes"],
        splits=splits,
    )
