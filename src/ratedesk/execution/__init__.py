"""Trade execution -- fee model and the BUY/SELL executor."""

from ratedesk.execution.fees import FeeCalculator, round_down
from ratedesk.execution.trade_executor import TradeExecutor

__all__ = ["FeeCalculator", "TradeExecutor", "round_down"]
