"""Exchange record schemas returned by the gateway"""

from typing import Literal, Optional

from pydantic import BaseModel


class Balance(BaseModel):
    currency: str
    balance: str  # Total equity
    available: str  # Available equity
    frozen: str = "0"


class Position(BaseModel):
    """Live position snapshot. Ratios are exchange fractions (x100 for percent)."""

    symbol: str
    pos_side: str  # long / short
    quantity: float
    avg_price: float = 0.0
    unrealized_pnl: float = 0.0
    pnl_ratio: float = 0.0
    margin_ratio: float = 0.0


class Candle(BaseModel):
    timestamp: str
    open: str
    high: str
    low: str
    close: str
    volume: str


class OrderRequest(BaseModel):
    inst_id: str
    td_mode: str = ""  # cash / cross / isolated
    side: Literal["buy", "sell"]
    pos_side: str = ""  # long / short (futures only)
    ord_type: Literal["market", "limit"] = "market"
    sz: str
    px: Optional[str] = None  # Not used for market orders
    lever: Optional[str] = None
    cl_ord_id: str = ""

    def to_payload(self) -> dict:
        """OKX wire format (camelCase keys, empty optionals omitted)."""
        payload = {
            "instId": self.inst_id,
            "tdMode": self.td_mode,
            "side": self.side,
            "posSide": self.pos_side,
            "ordType": self.ord_type,
            "sz": self.sz,
        }
        if self.px:
            payload["px"] = self.px
        if self.lever:
            payload["lever"] = self.lever
        if self.cl_ord_id:
            payload["clOrdId"] = self.cl_ord_id
        return payload


class OrderResponse(BaseModel):
    order_id: str
    cl_ord_id: str = ""
    tag: str = ""
    s_code: str = ""
    s_msg: str = ""
