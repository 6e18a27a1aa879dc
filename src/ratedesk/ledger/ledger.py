"""Per-account balance ledger for the primary (fiat) and secondary (asset) denominations.

Invariant: no operation leaves either balance below zero. Every
read-check-write on an account runs under that account's asyncio.Lock, so two
concurrent adjustments cannot both pass a sufficiency check against funds the
other is about to consume.
"""

import asyncio
import time
from decimal import Decimal
from uuid import uuid4

from ratedesk.config import LedgerSettings
from ratedesk.exceptions import AccountNotFoundError, InsufficientBalanceError, InvalidAmountError
from ratedesk.ledger.store import AccountStore, MemoryAccountStore
from ratedesk.logging import get_logger
from ratedesk.models import Account

logger = get_logger(__name__)

_ZERO = Decimal("0")


class AccountLedger:
    """Balance store with atomic, serialized per-account mutation.

    Args:
        store: Persistence backend. Defaults to an in-memory store.
    """

    def __init__(self, store: AccountStore | None = None) -> None:
        self._store = store or MemoryAccountStore()
        self._locks: dict[str, asyncio.Lock] = {}
        self._create_lock = asyncio.Lock()

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    async def create_account(
        self,
        account_id: str | None = None,
        *,
        username: str | None = None,
        is_admin: bool = False,
        primary_balance: Decimal = _ZERO,
        secondary_balance: Decimal = _ZERO,
    ) -> Account:
        """Register a new account, zero-balanced unless seeded.

        Raises:
            ValueError: If the id is already taken.
            InvalidAmountError: If a seed balance is negative.
        """
        _check_balance("primary", primary_balance)
        _check_balance("secondary", secondary_balance)
        account_id = account_id or uuid4().hex
        async with self._create_lock:
            if await self._store.get(account_id) is not None:
                raise ValueError(f"Account {account_id} already exists")
            account = Account(
                id=account_id,
                username=username,
                is_admin=is_admin,
                primary_balance=primary_balance,
                secondary_balance=secondary_balance,
                created_at=time.time(),
            )
            await self._store.put(account)
        logger.info("account_created", account_id=account_id, is_admin=is_admin)
        return account

    async def get_account(self, account_id: str) -> Account:
        """Return a snapshot of the account.

        Raises:
            AccountNotFoundError: Unknown id.
        """
        account = await self._store.get(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def list_accounts(self) -> list[Account]:
        return await self._store.all()

    async def set_balances(
        self,
        account_id: str,
        primary: Decimal | None = None,
        secondary: Decimal | None = None,
    ) -> Account:
        """Administrative absolute overwrite; omitted balances stay as they are.

        Raises:
            InvalidAmountError: If a provided balance is negative.
            AccountNotFoundError: Unknown id.
        """
        if primary is not None:
            _check_balance("primary", primary)
        if secondary is not None:
            _check_balance("secondary", secondary)

        async with self._lock_for(account_id):
            account = await self.get_account(account_id)
            if primary is not None:
                account.primary_balance = primary
            if secondary is not None:
                account.secondary_balance = secondary
            await self._store.put(account)

        logger.info(
            "account_balances_set",
            account_id=account_id,
            primary_balance=str(account.primary_balance),
            secondary_balance=str(account.secondary_balance),
        )
        return account

    async def adjust_balances(
        self,
        account_id: str,
        delta_primary: Decimal,
        delta_secondary: Decimal,
    ) -> Account:
        """Apply both signed deltas together or not at all.

        Raises:
            InsufficientBalanceError: Either resulting balance would be negative.
            AccountNotFoundError: Unknown id.
        """
        async with self._lock_for(account_id):
            account = await self.get_account(account_id)
            new_primary = account.primary_balance + delta_primary
            new_secondary = account.secondary_balance + delta_secondary

            if new_primary < _ZERO:
                raise InsufficientBalanceError(
                    f"Insufficient primary balance: need {-delta_primary}, have {account.primary_balance}",
                    account_id=account_id,
                    required=-delta_primary,
                    available=account.primary_balance,
                )
            if new_secondary < _ZERO:
                raise InsufficientBalanceError(
                    f"Insufficient secondary balance: need {-delta_secondary}, have {account.secondary_balance}",
                    account_id=account_id,
                    required=-delta_secondary,
                    available=account.secondary_balance,
                )

            account.primary_balance = new_primary
            account.secondary_balance = new_secondary
            await self._store.put(account)

        logger.debug(
            "account_balances_adjusted",
            account_id=account_id,
            delta_primary=str(delta_primary),
            delta_secondary=str(delta_secondary),
        )
        return account

    async def bootstrap_admin(self, settings: LedgerSettings) -> Account:
        """Seed the administrative account once; an existing one is returned untouched."""
        try:
            return await self.get_account(settings.admin_account_id)
        except AccountNotFoundError:
            return await self.create_account(
                settings.admin_account_id,
                username=settings.admin_username,
                is_admin=True,
                primary_balance=settings.admin_primary_balance,
                secondary_balance=settings.admin_secondary_balance,
            )


def _check_balance(label: str, value: Decimal) -> None:
    if not value.is_finite() or value < _ZERO:
        raise InvalidAmountError(f"{label.capitalize()} balance must be a non-negative number, got {value}")
