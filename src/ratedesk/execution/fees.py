"""Processing fee model and fixed-precision rounding for trade execution.

The fee is a flat percentage of the delivered side: on a BUY it is taken from
the asset received, on a SELL from the fiat received. All arithmetic is
Decimal; amounts are quantized DOWN so a trade never credits more than the
exact conversion.
"""

from decimal import ROUND_DOWN, Decimal

from ratedesk.config import TradingSettings

_HUNDRED = Decimal("100")


def round_down(value: Decimal, places: int) -> Decimal:
    """Truncate value to ``places`` decimal places (toward zero)."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)


class FeeCalculator:
    """Splits a gross received amount into (delivered, fee).

    Args:
        settings: Trading settings holding processing_fee_percent.
    """

    def __init__(self, settings: TradingSettings) -> None:
        self._fee_rate = settings.processing_fee_percent / _HUNDRED

    @property
    def fee_rate(self) -> Decimal:
        """Fee as a fraction, e.g. 0.005 for 0.5%."""
        return self._fee_rate

    def apply(self, gross: Decimal, places: int) -> tuple[Decimal, Decimal]:
        """Return (delivered, fee), both truncated to ``places``.

        Identical inputs always give identical outputs; with a zero fee the
        delivered amount is just ``round_down(gross, places)``.
        """
        fee = round_down(gross * self._fee_rate, places)
        delivered = round_down(gross - gross * self._fee_rate, places)
        return delivered, fee
