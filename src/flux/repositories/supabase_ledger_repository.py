import logging
from typing import Any, List, Optional

from supabase import Client, create_client

from flux.repositories.base import (
    PROFILES,
    LedgerRepository,
    NotFoundError,
    RemoteFailure,
    Row,
)

logger = logging.getLogger(__name__)


def get_supabase_client(url: str, key: str) -> Client:
    """Return a Supabase client instance."""
    return create_client(url, key)


class SupabaseLedgerRepository(LedgerRepository):
    """
    Supabase (PostgREST) implementation of the LedgerRepository.

    Rows carry a `user_id` column; every query filters on it. Ids and
    `created_at` are assigned by the database defaults.
    """

    def __init__(self, client: Client, user_id: str):
        super().__init__(user_id)
        self.client = client

    def fetch_all(self, table: str) -> List[Row]:
        try:
            response = (
                self.client.table(table)
                .select("*")
                .eq("user_id", self.user_id)
                .order("created_at")
                .execute()
            )
        except Exception as e:
            logger.error("Supabase select on %s failed: %s", table, e)
            raise RemoteFailure(f"Failed to read {table}: {e}") from e
        return list(response.data or [])

    def insert(self, table: str, row: Row) -> Row:
        return self.insert_many(table, [row])[0]

    def insert_many(self, table: str, rows: List[Row]) -> List[Row]:
        """One bulk insert request, applied as a single statement"""
        payload = [{**self._clean(row), "user_id": self.user_id} for row in rows]
        try:
            response = self.client.table(table).insert(payload).execute()
        except Exception as e:
            logger.error("Supabase insert on %s failed: %s", table, e)
            raise RemoteFailure(f"Failed to insert into {table}: {e}") from e

        data = list(response.data or [])
        logger.debug("Inserted %d row(s) into %s", len(data), table)
        if len(data) != len(payload):
            raise RemoteFailure(
                f"Insert into {table} returned {len(data)} row(s), expected {len(payload)}"
            )
        return data

    def update(self, table: str, record_id: str, row: Row) -> Row:
        try:
            response = (
                self.client.table(table)
                .update(self._clean(row))
                .eq("id", record_id)
                .eq("user_id", self.user_id)
                .execute()
            )
        except Exception as e:
            logger.error("Supabase update on %s failed: %s", table, e)
            raise RemoteFailure(f"Failed to update {table}: {e}") from e

        if not response.data:
            raise NotFoundError(f"Record with ID {record_id} not found in {table}")
        return response.data[0]

    def delete(self, table: str, record_id: str) -> bool:
        return self.delete_where(table, "id", record_id) > 0

    def delete_where(self, table: str, column: str, value: Any) -> int:
        try:
            response = (
                self.client.table(table)
                .delete()
                .eq(column, value)
                .eq("user_id", self.user_id)
                .execute()
            )
        except Exception as e:
            logger.error("Supabase delete on %s failed: %s", table, e)
            raise RemoteFailure(f"Failed to delete from {table}: {e}") from e
        deleted = len(response.data or [])
        logger.debug("Deleted %d row(s) from %s where %s = %s", deleted, table, column, value)
        return deleted

    def fetch_profile(self) -> Optional[Row]:
        try:
            response = (
                self.client.table(PROFILES)
                .select("*")
                .eq("id", self.user_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error("Supabase profile lookup failed: %s", e)
            raise RemoteFailure(f"Failed to read profile: {e}") from e
        return response.data[0] if response.data else None

    def save_profile(self, row: Row) -> Row:
        try:
            response = (
                self.client.table(PROFILES)
                .upsert({**row, "id": self.user_id})
                .execute()
            )
        except Exception as e:
            logger.error("Supabase profile upsert failed: %s", e)
            raise RemoteFailure(f"Failed to save profile: {e}") from e

        if not response.data:
            raise RemoteFailure("Profile upsert returned no row")
        return response.data[0]

    @staticmethod
    def _clean(row: Row) -> Row:
        return {k: v for k, v in row.items() if k not in ("id", "user_id", "created_at")}
