"""Tests for AccountLedger balance invariants and serialization."""

import asyncio
from decimal import Decimal

import pytest

from ratedesk.config import LedgerSettings
from ratedesk.exceptions import AccountNotFoundError, InsufficientBalanceError, InvalidAmountError
from ratedesk.ledger.ledger import AccountLedger


@pytest.mark.asyncio
async def test_new_account_has_zero_balances(ledger: AccountLedger) -> None:
    account = await ledger.create_account("alice", username="alice")

    assert account.primary_balance == Decimal("0")
    assert account.secondary_balance == Decimal("0")
    assert account.is_admin is False
    assert (await ledger.get_account("alice")).username == "alice"


@pytest.mark.asyncio
async def test_generated_ids_are_unique(ledger: AccountLedger) -> None:
    a = await ledger.create_account()
    b = await ledger.create_account()
    assert a.id != b.id
    assert {x.id for x in await ledger.list_accounts()} == {a.id, b.id}


@pytest.mark.asyncio
async def test_duplicate_id_rejected(ledger: AccountLedger) -> None:
    await ledger.create_account("alice")
    with pytest.raises(ValueError):
        await ledger.create_account("alice")


@pytest.mark.asyncio
async def test_unknown_account_not_found(ledger: AccountLedger) -> None:
    with pytest.raises(AccountNotFoundError) as exc_info:
        await ledger.get_account("ghost")
    assert exc_info.value.kind == "not_found"


@pytest.mark.asyncio
async def test_returned_account_is_a_snapshot(ledger: AccountLedger) -> None:
    account = await ledger.create_account("alice")
    account.primary_balance = Decimal("1000000")

    assert (await ledger.get_account("alice")).primary_balance == Decimal("0")


@pytest.mark.asyncio
async def test_set_balances_overwrites_only_given_fields(ledger: AccountLedger) -> None:
    await ledger.create_account("alice", primary_balance=Decimal("10"), secondary_balance=Decimal("0.5"))

    account = await ledger.set_balances("alice", primary=Decimal("250.00"))
    assert account.primary_balance == Decimal("250.00")
    assert account.secondary_balance == Decimal("0.5")

    account = await ledger.set_balances("alice", secondary=Decimal("0"))
    assert account.primary_balance == Decimal("250.00")
    assert account.secondary_balance == Decimal("0")


@pytest.mark.asyncio
async def test_set_balances_rejects_negative(ledger: AccountLedger) -> None:
    await ledger.create_account("alice", primary_balance=Decimal("10"))

    with pytest.raises(InvalidAmountError):
        await ledger.set_balances("alice", primary=Decimal("5"), secondary=Decimal("-1"))

    account = await ledger.get_account("alice")
    assert account.primary_balance == Decimal("10")
    assert account.secondary_balance == Decimal("0")


@pytest.mark.asyncio
async def test_set_balances_unknown_account(ledger: AccountLedger) -> None:
    with pytest.raises(AccountNotFoundError):
        await ledger.set_balances("ghost", primary=Decimal("1"))


@pytest.mark.asyncio
async def test_adjust_applies_both_deltas(ledger: AccountLedger) -> None:
    await ledger.create_account("alice", primary_balance=Decimal("1000.00"))

    account = await ledger.adjust_balances("alice", Decimal("-500"), Decimal("0.01"))

    assert account.primary_balance == Decimal("500.00")
    assert account.secondary_balance == Decimal("0.01")


@pytest.mark.asyncio
async def test_adjust_rejects_in_full_when_either_side_goes_negative(ledger: AccountLedger) -> None:
    await ledger.create_account("alice", primary_balance=Decimal("100"), secondary_balance=Decimal("1"))

    with pytest.raises(InsufficientBalanceError) as exc_info:
        await ledger.adjust_balances("alice", Decimal("50"), Decimal("-2"))

    assert exc_info.value.required == Decimal("2")
    assert exc_info.value.available == Decimal("1")
    account = await ledger.get_account("alice")
    assert account.primary_balance == Decimal("100")
    assert account.secondary_balance == Decimal("1")


@pytest.mark.asyncio
async def test_concurrent_adjustments_cannot_double_spend(ledger: AccountLedger) -> None:
    await ledger.create_account("alice", primary_balance=Decimal("100"))

    results = await asyncio.gather(
        *(ledger.adjust_balances("alice", Decimal("-30"), Decimal("0")) for _ in range(5)),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, InsufficientBalanceError)]
    assert len(successes) == 3
    assert len(failures) == 2
    assert (await ledger.get_account("alice")).primary_balance == Decimal("10")


@pytest.mark.asyncio
async def test_bootstrap_admin_seeds_once(ledger: AccountLedger) -> None:
    settings = LedgerSettings(
        admin_account_id="root",
        admin_primary_balance=Decimal("10000"),
        admin_secondary_balance=Decimal("1"),
    )

    admin = await ledger.bootstrap_admin(settings)
    assert admin.is_admin is True
    assert admin.primary_balance == Decimal("10000")

    await ledger.set_balances("root", primary=Decimal("5"))
    again = await ledger.bootstrap_admin(settings)
    assert again.primary_balance == Decimal("5")
