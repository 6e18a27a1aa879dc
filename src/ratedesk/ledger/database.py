"""Async SQLite connection manager for durable account balances.

Uses aiosqlite for non-blocking access with WAL mode. Balances are stored as
TEXT so Decimal values round-trip exactly.
"""

import os
from typing import Self

import aiosqlite

from ratedesk.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    username TEXT,
    primary_balance TEXT NOT NULL DEFAULT '0',
    secondary_balance TEXT NOT NULL DEFAULT '0',
    is_admin INTEGER NOT NULL DEFAULT 0,
    created_at REAL NOT NULL
);
"""


class LedgerDatabase:
    """Owns the aiosqlite connection used by SqliteAccountStore.

    Usage:
        async with LedgerDatabase("data/ledger.db") as database:
            store = SqliteAccountStore(database)
    """

    def __init__(self, db_path: str = "data/ledger.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    @property
    def db(self) -> aiosqlite.Connection:
        """The open connection. Raises RuntimeError before connect()."""
        if self._connection is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return self._connection

    async def connect(self) -> None:
        """Open the connection, set pragmas and create the schema."""
        db_dir = os.path.dirname(self._db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)

        self._connection = await aiosqlite.connect(self._db_path)
        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.executescript(_CREATE_TABLES_SQL)

        cursor = await self._connection.execute("SELECT version FROM schema_version LIMIT 1")
        if await cursor.fetchone() is None:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
        await self._connection.commit()
        logger.info("ledger_db_connected", db_path=self._db_path)

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None
            logger.info("ledger_db_closed", db_path=self._db_path)

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
