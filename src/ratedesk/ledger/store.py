"""Account storage backends behind a get/put/all interface.

The ledger owns locking and invariants; stores only persist snapshots. A
store never hands out objects it keeps internally, so callers cannot mutate
stored state behind the ledger's back.
"""

from abc import ABC, abstractmethod
from dataclasses import replace
from decimal import Decimal

from ratedesk.ledger.database import LedgerDatabase
from ratedesk.models import Account


class AccountStore(ABC):
    """Persistence contract used by AccountLedger."""

    @abstractmethod
    async def get(self, account_id: str) -> Account | None:
        ...

    @abstractmethod
    async def put(self, account: Account) -> None:
        """Insert or replace the account."""
        ...

    @abstractmethod
    async def all(self) -> list[Account]:
        ...


class MemoryAccountStore(AccountStore):
    """Process-lifetime store. The default."""

    def __init__(self) -> None:
        self._accounts: dict[str, Account] = {}

    async def get(self, account_id: str) -> Account | None:
        account = self._accounts.get(account_id)
        return replace(account) if account is not None else None

    async def put(self, account: Account) -> None:
        self._accounts[account.id] = replace(account)

    async def all(self) -> list[Account]:
        return [replace(a) for a in self._accounts.values()]


class SqliteAccountStore(AccountStore):
    """Durable store on top of LedgerDatabase. Decimals are kept as TEXT."""

    _COLUMNS = "id, username, primary_balance, secondary_balance, is_admin, created_at"

    def __init__(self, database: LedgerDatabase) -> None:
        self._database = database

    async def get(self, account_id: str) -> Account | None:
        cursor = await self._database.db.execute(
            f"SELECT {self._COLUMNS} FROM accounts WHERE id = ?", (account_id,)
        )
        row = await cursor.fetchone()
        return self._row_to_account(row) if row is not None else None

    async def put(self, account: Account) -> None:
        await self._database.db.execute(
            f"INSERT OR REPLACE INTO accounts ({self._COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                account.id,
                account.username,
                str(account.primary_balance),
                str(account.secondary_balance),
                int(account.is_admin),
                account.created_at,
            ),
        )
        await self._database.db.commit()

    async def all(self) -> list[Account]:
        cursor = await self._database.db.execute(
            f"SELECT {self._COLUMNS} FROM accounts ORDER BY created_at, rowid"
        )
        rows = await cursor.fetchall()
        return [self._row_to_account(row) for row in rows]

    @staticmethod
    def _row_to_account(row: tuple) -> Account:
        return Account(
            id=row[0],
            username=row[1],
            primary_balance=Decimal(row[2]),
            secondary_balance=Decimal(row[3]),
            is_admin=bool(row[4]),
            created_at=float(row[5]),
        )
