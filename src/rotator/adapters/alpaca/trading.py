from __future__ import annotations

import logging

from alpaca_trade_api.rest import APIError

from rotator.adapters.alpaca.client import AlpacaClient
from rotator.ports.trading import OrderRequest, TradeResult, TradingPort
from rotator.shared.decorators import logged, paper_only

_log = logging.getLogger(__name__)

# broker messages/codes meaning "this asset only trades in whole shares"
NOT_FRACTIONABLE_MARKERS = ("not fractionable", "40310000", "42210000")


def is_not_fractionable(message: str) -> bool:
    m = (message or "").lower()
    return any(marker in m for marker in NOT_FRACTIONABLE_MARKERS)


def _fmt_qty(qty: float) -> str:
    return f"{qty:.9f}".rstrip("0").rstrip(".")


class AlpacaTrading(TradingPort):
    def __init__(self, client: AlpacaClient, require_paper: bool = True):
        self.client = client
        self.require_paper = require_paper

    def is_paper(self) -> bool:
        return self.client.is_paper()

    @paper_only
    @logged
    def place_order(self, request: OrderRequest) -> TradeResult:
        if (request.notional is None) == (request.qty is None):
            raise ValueError("exactly one of notional or qty must be set")
        kwargs = dict(
            symbol=request.symbol,
            side=request.side,
            type=request.type,
            time_in_force=request.time_in_force,
        )
        if request.notional is not None:
            kwargs["notional"] = f"{request.notional:.2f}"
        else:
            kwargs["qty"] = _fmt_qty(float(request.qty))

        try:
            order = self.client.call(self.client.api.submit_order, **kwargs)
        except APIError as e:
            msg = str(e)
            code = getattr(e, "code", None)
            if code is not None:
                msg = f"{msg} (code {code})"
            return TradeResult(ok=False, order_id=None, message=msg, not_fractionable=is_not_fractionable(msg))
        return TradeResult(ok=True, order_id=str(getattr(order, "id", "")) or None, message="submitted")
