from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

Row = Dict[str, Any]

TRANSACTIONS = "transactions"
CARDS = "cards"
GOALS = "goals"
CATEGORIES = "categories"
PROFILES = "profiles"
NOTIFICATIONS = "notifications"

TABLES = (TRANSACTIONS, CARDS, GOALS, CATEGORIES, NOTIFICATIONS)

class NotFoundError(Exception):
    """Raised when a record cannot be found."""
    pass

class RemoteFailure(Exception):
    """Raised when the persistence backend reports an error."""
    pass

class LedgerRepository(ABC):
    """
    Abstract per-user persistence for ledger tables.

    Every call is scoped to the user the repository was created for, and
    every mutation echoes back the stored row (with server-assigned `id`
    and `created_at`). Backends wrap their own errors in RemoteFailure.
    """

    def __init__(self, user_id: str):
        self.user_id = user_id

    @abstractmethod
    def fetch_all(self, table: str) -> List[Row]:
        """
        Retrieve every row of `table` owned by the user.

        Args:
            table: One of TABLES

        Returns:
            List of rows, in no particular order
        """
        pass

    @abstractmethod
    def insert(self, table: str, row: Row) -> Row:
        """
        Insert one row.

        Args:
            table: One of TABLES
            row: Column values without id/created_at/user_id

        Returns:
            The stored row, id populated
        """
        pass

    @abstractmethod
    def insert_many(self, table: str, rows: List[Row]) -> List[Row]:
        """
        Insert several rows in a single all-or-nothing operation.

        Returns:
            The stored rows, in input order
        """
        pass

    @abstractmethod
    def update(self, table: str, record_id: str, row: Row) -> Row:
        """
        Replace the columns of an existing row.

        Returns:
            The stored row

        Raises:
            NotFoundError: If no row with `record_id` exists
        """
        pass

    @abstractmethod
    def delete(self, table: str, record_id: str) -> bool:
        """
        Delete a row by id.

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    def delete_where(self, table: str, column: str, value: Any) -> int:
        """
        Delete every row where `column` equals `value`.

        Returns:
            Number of rows deleted
        """
        pass

    @abstractmethod
    def fetch_profile(self) -> Optional[Row]:
        """Return the user's profile row, or None if it was never created"""
        pass

    @abstractmethod
    def save_profile(self, row: Row) -> Row:
        """Create or replace the user's profile row"""
        pass
