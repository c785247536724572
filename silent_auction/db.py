"""
Supabase database integration module.

Handles the table operations the sync layer needs:
- Loading a whole collection ordered by its natural key
- Inserting, updating and deleting single rows by key

Tables required (see setup_supabase.sql):
- items: id (PK), name, section, winning_bid (jsonb), created_at, updated_at
- attendees: bid_num (PK), name, won_items (text[]), created_at, updated_at
- approved_users: email (allow-list for the admin panel)

PostgREST errors are translated into the panel's error types so callers
can tell a missing setup apart from a permission problem or a transient
transport failure.
"""

import logging
from typing import Optional

from httpx import HTTPError
from postgrest.exceptions import APIError
from supabase import create_client, Client

from .config import SupabaseConfig, get_supabase_config
from .errors import AccessPolicyError, ConfigurationError, RemoteStoreError

logger = logging.getLogger(__name__)

# Postgres / PostgREST error codes
UNDEFINED_TABLE = "42P01"
TABLE_NOT_IN_SCHEMA_CACHE = "PGRST205"
INSUFFICIENT_PRIVILEGE = "42501"


def translate_api_error(table: str, error: APIError) -> RemoteStoreError:
    """
    Map a PostgREST error onto the panel's error taxonomy.

    Args:
        table: The table the request was made against
        error: The APIError raised by postgrest

    Returns:
        ConfigurationError, AccessPolicyError or a generic RemoteStoreError
    """
    code = str(error.code or "")
    message = error.message or str(error)

    if code in (UNDEFINED_TABLE, TABLE_NOT_IN_SCHEMA_CACHE) or "does not exist" in message:
        return ConfigurationError(
            f'Database table "{table}" does not exist. '
            "Please run setup_supabase.sql in the Supabase SQL editor."
        )
    if code == INSUFFICIENT_PRIVILEGE:
        return AccessPolicyError(
            f'Permission denied on "{table}". '
            "Please check your Row Level Security (RLS) policies in Supabase."
        )
    return RemoteStoreError(f"{table}: {message}")


class Database:
    """
    Supabase database client wrapper.

    Provides the row-level operations used by the sync layer.
    """

    def __init__(self, config: Optional[SupabaseConfig] = None):
        """Initialize Supabase client."""
        config = config or get_supabase_config()
        if not config.is_configured:
            raise ConfigurationError(
                "Supabase is not configured. Set SUPABASE_URL and SUPABASE_KEY in your .env file."
            )
        self._client: Client = create_client(config.url, config.key)

    @property
    def client(self) -> Client:
        """Get the Supabase client."""
        return self._client

    def _execute(self, table: str, query):
        try:
            return query.execute()
        except APIError as e:
            logger.error(f"Supabase error on {table}: {e.message} (code {e.code})")
            raise translate_api_error(table, e) from e
        except HTTPError as e:
            logger.error(f"Transport error on {table}: {e}")
            raise RemoteStoreError(f"{table}: {e}") from e

    # =========================================================================
    # COLLECTION OPERATIONS
    # =========================================================================

    def select_all(self, table: str, order_by: str) -> list[dict]:
        """
        Fetch every row of a table.

        Args:
            table: Table name ("items" or "attendees")
            order_by: Column to sort ascending by (the natural key)

        Returns:
            List of row dicts
        """
        query = self._client.table(table).select("*").order(order_by, desc=False)
        result = self._execute(table, query)
        rows = result.data or []
        logger.debug(f"Fetched {len(rows)} rows from {table}")
        return rows

    def insert(self, table: str, row: dict) -> dict:
        """Insert one row and return it as stored."""
        result = self._execute(table, self._client.table(table).insert(row))
        logger.info(f"Inserted row into {table}")
        return result.data[0] if result.data else row

    def update(self, table: str, key_column: str, key: str, fields: dict) -> None:
        """
        Update the given columns of the row whose key column equals key.

        Raises:
            RemoteStoreError: if no row matched (deleted elsewhere or hidden by RLS)
        """
        query = self._client.table(table).update(fields).eq(key_column, key)
        result = self._execute(table, query)
        if not result.data:
            logger.error(f"Update matched no row: {table}[{key}]")
            raise RemoteStoreError(f"{table}: no row with {key_column} = {key}")
        logger.debug(f"Updated {table}[{key}]: {sorted(fields)}")

    def delete(self, table: str, key_column: str, key: str) -> None:
        """Delete the row whose key column equals key."""
        self._execute(table, self._client.table(table).delete().eq(key_column, key))
        logger.info(f"Deleted {table}[{key}]")


# Global database instance (lazy loaded)
_db: Optional[Database] = None


def get_db() -> Database:
    """Get database instance (singleton)."""
    global _db
    if _db is None:
        _db = Database()
    return _db
