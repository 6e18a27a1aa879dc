"""Simulated BUY/SELL execution against the current cached rate.

Flow for one trade:
1. Validate the amount (positive, finite, no finer than the precision of the
   spent side, within notional limits).
2. Read the current rate ONCE and keep a local copy for the whole trade.
3. Compute the received amount (less processing fee), truncated to precision.
4. Apply both balance deltas through AccountLedger.adjust_balances, which
   re-checks sufficiency under the account lock and writes atomically.

Any rejection raises before the ledger is touched, or inside the ledger's
critical section before anything is written, so balances are never left
half-updated.
"""

from decimal import Decimal, InvalidOperation

from ratedesk.config import TradingSettings
from ratedesk.exceptions import InvalidAmountError, RateUnavailableError
from ratedesk.execution.fees import FeeCalculator, round_down
from ratedesk.ledger.ledger import AccountLedger
from ratedesk.logging import get_logger
from ratedesk.models import TradeDirection, TradeRequest, TradeResult
from ratedesk.rates.cache import RateCache

logger = get_logger(__name__)


class TradeExecutor:
    """Converts between an account's primary and secondary balances.

    Args:
        rate_cache: Source of the current rate.
        ledger: Account balances.
        fee_calculator: Processing fee model.
        settings: Precision and notional limits.
    """

    def __init__(
        self,
        rate_cache: RateCache,
        ledger: AccountLedger,
        fee_calculator: FeeCalculator,
        settings: TradingSettings | None = None,
    ) -> None:
        self._rate_cache = rate_cache
        self._ledger = ledger
        self._fees = fee_calculator
        self._settings = settings or TradingSettings()

    async def buy(self, account_id: str, primary_amount: Decimal) -> TradeResult:
        """Spend ``primary_amount`` of fiat on the asset."""
        return await self.execute(TradeRequest(account_id, TradeDirection.BUY, primary_amount))

    async def sell(self, account_id: str, secondary_amount: Decimal) -> TradeResult:
        """Sell ``secondary_amount`` of the asset for fiat."""
        return await self.execute(TradeRequest(account_id, TradeDirection.SELL, secondary_amount))

    async def execute(self, request: TradeRequest) -> TradeResult:
        """Execute one trade.

        Raises:
            InvalidAmountError: Non-positive amount, more decimal places than
                the spent side carries, notional outside limits,
                or an amount too small to deliver anything at this precision.
            RateUnavailableError: No usable market rate.
            InsufficientBalanceError: The spent balance does not cover the amount.
            AccountNotFoundError: Unknown account.
        """
        amount = request.amount
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmountError(f"Trade amount must be positive, got {amount}")
        places = (
            self._settings.primary_precision
            if request.direction == TradeDirection.BUY
            else self._settings.secondary_precision
        )
        try:
            quantized = round_down(amount, places)
        except InvalidOperation:
            raise InvalidAmountError(f"Trade amount {amount} is too large") from None
        if quantized != amount:
            raise InvalidAmountError(f"Trade amount {amount} has more than {places} decimal places")
        amount = quantized

        record = await self._rate_cache.get_current_rate()
        if record.is_synthetic:
            raise RateUnavailableError("Live exchange rate unavailable; trading is suspended")
        rate = record.price

        settings = self._settings
        if request.direction == TradeDirection.BUY:
            notional = amount
            delivered, fee = self._fees.apply(amount / rate, settings.secondary_precision)
            delta_primary, delta_secondary = -amount, delivered
            amount_primary, amount_secondary = amount, delivered
        else:
            notional = amount * rate
            delivered, fee = self._fees.apply(notional, settings.primary_precision)
            delta_primary, delta_secondary = delivered, -amount
            amount_primary, amount_secondary = delivered, amount

        self._check_limits(notional)
        if delivered <= 0:
            raise InvalidAmountError(f"Trade amount {amount} is too small to execute at rate {rate}")

        account = await self._ledger.adjust_balances(request.account_id, delta_primary, delta_secondary)

        result = TradeResult(
            direction=request.direction,
            amount_primary=amount_primary,
            amount_secondary=amount_secondary,
            rate_used=rate,
            fee=fee,
            resulting_primary_balance=account.primary_balance,
            resulting_secondary_balance=account.secondary_balance,
        )
        logger.info(
            "trade_executed",
            account_id=request.account_id,
            direction=request.direction.value,
            amount_primary=str(amount_primary),
            amount_secondary=str(amount_secondary),
            rate=str(rate),
            fee=str(fee),
            rate_source=record.source,
        )
        return result

    def _check_limits(self, notional: Decimal) -> None:
        low, high = self._settings.min_trade_primary, self._settings.max_trade_primary
        if low is not None and notional < low:
            raise InvalidAmountError(f"Trade value {round_down(notional, 2)} is below the minimum of {low}")
        if high is not None and notional > high:
            raise InvalidAmountError(f"Trade value {round_down(notional, 2)} exceeds the maximum of {high}")
