"""
Position monitor

Closes positions whose PnL ratio has reached take-profit or stop-loss.
Called from each symbol's polling task on its own timer.
"""

import logging
import time
from typing import List, Optional

from okxauto.constants import HEDGE_POS_SIDES
from okxauto.exceptions import PositionCloseError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.schemas.config import EngineConfig
from okxauto.schemas.exchange import OrderRequest, OrderResponse, Position

logger = logging.getLogger(__name__)


def breach_reason(position: Position, config: EngineConfig) -> Optional[str]:
    """'take_profit', 'stop_loss', or None if the position is within limits."""
    side = config.side_config(position.pos_side)
    if position.pnl_ratio >= side.take_profit:
        return "take_profit"
    if position.pnl_ratio <= -side.stop_loss:
        return "stop_loss"
    return None


def close_quantity(position: Position, min_close_quantity: int) -> int:
    return max(int(abs(position.quantity)), min_close_quantity)


async def close_position(exchange: ExchangeClient, config: EngineConfig, position: Position) -> OrderResponse:
    """Place a market order that closes `position` on the same position side."""
    request = OrderRequest(
        inst_id=position.symbol,
        td_mode=config.margin_mode,
        side="sell" if position.pos_side == "long" else "buy",
        pos_side=position.pos_side,
        ord_type="market",
        sz=str(close_quantity(position, config.min_close_quantity)),
        cl_ord_id=f"close{int(time.time() * 1000)}",
    )
    logger.info(f"[{position.symbol}] Closing {position.pos_side} position: {request.side} {request.sz}")
    return await exchange.place_order(request)


async def check_position_pnl(exchange: ExchangeClient, config: EngineConfig, symbol: str) -> List[OrderResponse]:
    """
    Close every long/short position of `symbol` that breached its PnL limits.

    All breached positions are attempted before failures are reported.
    Net-mode positions are skipped: a flipped order would not close them.

    Raises:
        PositionCloseError: one or more closing orders failed
    """
    positions = await exchange.get_positions(symbol)

    closed: List[OrderResponse] = []
    failures: List[str] = []
    for position in positions:
        if position.quantity == 0:
            continue
        if position.pos_side not in HEDGE_POS_SIDES:
            logger.debug(f"[{symbol}] Skipping {position.pos_side!r} position (qty {position.quantity})")
            continue

        pnl_pct = position.pnl_ratio * 100
        reason = breach_reason(position, config)
        if reason is None:
            logger.debug(f"[{symbol}] {position.pos_side} position PnL {pnl_pct:.2f}% within limits")
            continue

        logger.info(f"[{symbol}] {position.pos_side} position hit {reason} at PnL {pnl_pct:.2f}%")
        try:
            closed.append(await close_position(exchange, config, position))
        except Exception as e:
            logger.error(f"[{symbol}] Failed to close {position.pos_side} position: {e}")
            failures.append(f"{position.pos_side}: {e}")

    if failures:
        raise PositionCloseError(f"[{symbol}] Failed to close positions: {'; '.join(failures)}")
    return closed
