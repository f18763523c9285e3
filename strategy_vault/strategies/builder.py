"""Fluent builder for strategy operation lists."""

from typing import Any, Optional

from ..errors import InvalidInputError
from .models import OperationType, Scalar, StrategyOperation


class StrategyBuilder:
    """
    Build an ordered operation list one step at a time.

    Orders are assigned consecutively from 1. Options left as None are
    dropped from the operation params.
    """

    def __init__(self) -> None:
        self._operations: list[StrategyOperation] = []
        self._current_order = 1

    def _add(
        self,
        op_type: OperationType,
        params: dict[str, Scalar],
        label: Optional[str] = None,
        optional: bool = False
    ) -> "StrategyBuilder":
        self._operations.append(StrategyOperation(
            type=op_type,
            order=self._current_order,
            params={key: value for key, value in params.items() if value is not None},
            label=label,
            optional=optional,
        ))
        self._current_order += 1
        return self

    def spot_buy(self, ticker: str, amount: str, is_percentage: Optional[bool] = None,
                 max_price: Optional[str] = None, exchange: Optional[str] = None,
                 label: Optional[str] = None, optional: bool = False) -> "StrategyBuilder":
        return self._add(OperationType.SPOT_BUY, {
            "ticker": ticker,
            "amount": amount,
            "isPercentage": is_percentage,
            "maxPrice": max_price,
            "exchange": exchange,
        }, label, optional)

    def spot_sell(self, ticker: str, amount: str, is_percentage: Optional[bool] = None,
                  min_price: Optional[str] = None, exchange: Optional[str] = None,
                  label: Optional[str] = None, optional: bool = False) -> "StrategyBuilder":
        return self._add(OperationType.SPOT_SELL, {
            "ticker": ticker,
            "amount": amount,
            "isPercentage": is_percentage,
            "minPrice": min_price,
            "exchange": exchange,
        }, label, optional)

    def open_long(self, ticker: str, size: str, leverage: float, **options: Any) -> "StrategyBuilder":
        return self._open_position(OperationType.OPEN_LONG, ticker, size, leverage, **options)

    def open_short(self, ticker: str, size: str, leverage: float, **options: Any) -> "StrategyBuilder":
        return self._open_position(OperationType.OPEN_SHORT, ticker, size, leverage, **options)

    def _open_position(self, op_type: OperationType, ticker: str, size: str, leverage: float,
                       is_percentage: Optional[bool] = None, stop_loss: Optional[str] = None,
                       take_profit: Optional[str] = None, exchange: Optional[str] = None,
                       label: Optional[str] = None, optional: bool = False) -> "StrategyBuilder":
        return self._add(op_type, {
            "ticker": ticker,
            "size": size,
            "leverage": leverage,
            "isPercentage": is_percentage,
            "stopLoss": stop_loss,
            "takeProfit": take_profit,
            "exchange": exchange,
        }, label, optional)

    def close_long(self, ticker: str, amount: Optional[str] = None, close_all: bool = True,
                   min_price: Optional[str] = None, exchange: Optional[str] = None,
                   label: Optional[str] = None, optional: bool = False) -> "StrategyBuilder":
        return self._add(OperationType.CLOSE_LONG, {
            "ticker": ticker,
            "amount": amount,
            "closeAll": close_all,
            "minPrice": min_price,
            "exchange": exchange,
        }, label, optional)

    def close_short(self, ticker: str, amount: Optional[str] = None, close_all: bool = True,
                    max_price: Optional[str] = None, exchange: Optional[str] = None,
                    label: Optional[str] = None, optional: bool = False) -> "StrategyBuilder":
        return self._add(OperationType.CLOSE_SHORT, {
            "ticker": ticker,
            "amount": amount,
            "closeAll": close_all,
            "maxPrice": max_price,
            "exchange": exchange,
        }, label, optional)

    def check_funding_rate(self, ticker: str, min_rate: Optional[float] = None,
                           max_rate: Optional[float] = None, exchange: Optional[str] = None,
                           label: Optional[str] = None) -> "StrategyBuilder":
        return self._add(OperationType.CHECK_FUNDING_RATE, {
            "ticker": ticker,
            "minRate": min_rate,
            "maxRate": max_rate,
            "exchange": exchange,
        }, label)

    def check_price(self, ticker: str, operator: str, target_price: str,
                    exchange: Optional[str] = None, label: Optional[str] = None) -> "StrategyBuilder":
        if operator not in ("gt", "lt", "gte", "lte", "eq"):
            raise InvalidInputError(f"Unsupported price operator: {operator}", field="operator", value=operator)
        return self._add(OperationType.CHECK_PRICE, {
            "ticker": ticker,
            "operator": operator,
            "targetPrice": target_price,
            "exchange": exchange,
        }, label)

    def wait(self, duration: int, condition: Optional[str] = None,
             label: Optional[str] = None) -> "StrategyBuilder":
        return self._add(OperationType.WAIT, {
            "duration": duration,
            "condition": condition,
        }, label)

    def build(self) -> list[StrategyOperation]:
        return list(self._operations)

    def reset(self) -> "StrategyBuilder":
        self._operations = []
        self._current_order = 1
        return self
