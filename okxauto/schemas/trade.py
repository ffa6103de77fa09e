"""Trade-record Pydantic schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class TradeResponse(BaseModel):
    id: int
    symbol: str
    side: str
    price: float
    amount: float
    strategy: str
    status: str
    order_id: str
    trade_type: str
    created_at: datetime

    class Config:
        from_attributes = True


class TradeStats(BaseModel):
    symbol: Optional[str] = None
    trade_count: int = 0
    buy_count: int = 0
    sell_count: int = 0
    total_amount: float = 0.0
    average_price: float = 0.0
