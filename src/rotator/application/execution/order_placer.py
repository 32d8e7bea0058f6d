from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional

from rotator.application.execution.result import OrderResult
from rotator.domain.market.symbols import time_in_force_for
from rotator.domain.portfolio.entities import CurrentPosition, RebalanceOrder
from rotator.ports.market_data import MarketDataPort
from rotator.ports.trading import OrderRequest, TradingPort

_log = logging.getLogger(__name__)

MIN_QTY = 1e-6


class OrderSkipped(Exception):
    """The order cannot be placed as asked and must not count as a failure."""


@dataclass(slots=True)
class OrderPlacer:
    """
    Sends one rebalance order to the broker.

    Orders go out by notional first. Shorts are opened and covered in whole
    shares. A "not fractionable" rejection is retried once by quantity.
    """

    trading: TradingPort
    market_data: MarketDataPort

    def place(
        self,
        order: RebalanceOrder,
        owned: Mapping[str, CurrentPosition],
        account_qty: Mapping[str, float],
    ) -> OrderResult:
        """
        owned: this strategy's positions by canonical symbol.
        account_qty: signed quantity of every account position, any owner.
        """
        pos = owned.get(order.symbol)
        tif = time_in_force_for(order.symbol)
        opening_short = order.is_short_target and order.side == "sell" and (pos is None or pos.qty >= 0)
        covering_short = order.side == "buy" and pos is not None and pos.qty < 0

        try:
            if opening_short:
                return self._open_short(order, account_qty, tif)
            if covering_short:
                return self._cover_short(order, pos, tif)

            res = self.trading.place_order(
                OrderRequest(
                    symbol=order.symbol,
                    side=order.side,
                    notional=round(float(order.notional), 2),
                    time_in_force=tif,
                )
            )
            if res.ok:
                return OrderResult(order.symbol, order.side, order.notional, "success", order_id=res.order_id)
            if not res.not_fractionable:
                return self._failed(order, res.message)

            _log.info("%s: notional order rejected (%s), retrying by qty", order.symbol, res.message[:60])
            return self._retry_with_qty(order, pos, tif)
        except OrderSkipped as e:
            return OrderResult(order.symbol, order.side, order.notional, "skipped", message=str(e))
        except Exception as e:
            return self._failed(order, str(e) or type(e).__name__)

    def _failed(self, order: RebalanceOrder, message: str) -> OrderResult:
        _log.warning("%s %s order failed: %s", order.symbol, order.side, message)
        return OrderResult(order.symbol, order.side, order.notional, "failed", message=message)

    def _price(self, symbol: str) -> float:
        price = self.market_data.latest_price(symbol)
        if price is None or price <= 0:
            raise RuntimeError(f"Cannot get current price for {symbol}")
        return float(price)

    def _submit_qty(self, order: RebalanceOrder, qty: float, price: float, tif: str) -> OrderResult:
        res = self.trading.place_order(
            OrderRequest(symbol=order.symbol, side=order.side, qty=qty, time_in_force=tif)
        )
        if not res.ok:
            return self._failed(order, res.message)
        return OrderResult(order.symbol, order.side, qty * price, "success", order_id=res.order_id, qty=qty)

    def _open_short(self, order: RebalanceOrder, account_qty: Mapping[str, float], tif: str) -> OrderResult:
        held = float(account_qty.get(order.symbol, 0.0))
        if held > 0:
            raise OrderSkipped(
                f"Cannot open short - existing long position ({held:.6f} shares) from another strategy"
            )
        price = self._price(order.symbol)
        qty = math.floor(order.notional / price)
        if qty == 0:
            raise OrderSkipped(
                f"Notional ${order.notional:.2f} too small for whole share short at ${price:.2f}"
            )
        return self._submit_qty(order, float(qty), price, tif)

    def _cover_short(self, order: RebalanceOrder, pos: CurrentPosition, tif: str) -> OrderResult:
        price = self._price(order.symbol)
        qty = min(float(math.floor(order.notional / price)), abs(float(pos.qty)))
        if qty < MIN_QTY:
            raise OrderSkipped("Notional too small for whole share order")
        return self._submit_qty(order, qty, price, tif)

    def _retry_with_qty(self, order: RebalanceOrder, pos: Optional[CurrentPosition], tif: str) -> OrderResult:
        if order.side == "sell" and (pos is None or pos.qty <= 0):
            raise OrderSkipped("No long position to sell")
        price = self._price(order.symbol)
        qty = order.notional / price
        if order.side == "sell":
            qty = min(qty, float(pos.qty))
        else:
            qty = float(math.floor(qty))
        if qty < MIN_QTY:
            raise OrderSkipped(f"Notional ${order.notional:.2f} too small at ${price:.2f}/share")
        return self._submit_qty(order, qty, price, tif)
