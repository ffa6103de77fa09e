"""Trading models: executed trade records."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String

from okxauto.database import Base


class Trade(Base):
    """
    Record of an order the engine placed on the exchange.

    Written once after a successful order placement; never updated.
    """
    __tablename__ = "trades"

    id = Column(Integer, primary_key=True, index=True)
    symbol = Column(String, nullable=False, index=True)  # e.g. BTC-USDT-SWAP
    side = Column(String, nullable=False)  # buy, sell
    price = Column(Float, nullable=False)  # Signal reference price
    amount = Column(Float, nullable=False)
    strategy = Column(String, nullable=False, index=True)  # Grid, RSI, LongPosition, ShortPosition
    status = Column(String, nullable=False)
    order_id = Column(String, nullable=False)  # Exchange order ID
    trade_type = Column(String, nullable=False, default="spot")  # spot, futures
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
