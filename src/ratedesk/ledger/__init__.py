"""Account ledger -- balances, locking and storage backends."""

from ratedesk.ledger.database import LedgerDatabase
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.ledger.store import AccountStore, MemoryAccountStore, SqliteAccountStore

__all__ = ["AccountLedger", "AccountStore", "LedgerDatabase", "MemoryAccountStore", "SqliteAccountStore"]
