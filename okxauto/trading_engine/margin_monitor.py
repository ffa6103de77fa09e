"""
Margin monitor

Audits the margin ratio of every open position against its threshold and,
when auto-margin is enabled for that side, tops the position up by the fixed
configured amount.
"""

import logging
from typing import List

from okxauto.constants import HEDGE_POS_SIDES
from okxauto.exceptions import MarginAdjustmentError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.schemas.config import EngineConfig
from okxauto.trading_engine.balance_guard import ensure_balance

logger = logging.getLogger(__name__)


async def add_margin(exchange: ExchangeClient, config: EngineConfig, symbol: str, pos_side: str, amount: float) -> dict:
    """Verify balance (reserve included) and add `amount` margin to the position."""
    await ensure_balance(exchange, amount, config.reserve_balance, context=symbol)
    result = await exchange.add_margin(symbol, pos_side, amount)
    logger.info(f"[{symbol}] Added {amount:.4f} margin to {pos_side} position")
    return result


async def check_and_adjust_margin(exchange: ExchangeClient, config: EngineConfig, symbol: str) -> int:
    """
    Top up every under-margined position of `symbol` that allows it.

    Returns:
        Number of successful top-ups

    Raises:
        MarginAdjustmentError: one or more top-ups failed (after all were tried)
    """
    positions = await exchange.get_positions(symbol)

    adjusted = 0
    failures: List[str] = []
    for position in positions:
        if position.quantity == 0 or position.pos_side not in HEDGE_POS_SIDES:
            continue

        side = config.side_config(position.pos_side)
        current = position.margin_ratio * 100
        threshold = side.margin_threshold_pct(symbol)

        logger.debug(f"[{symbol}] {position.pos_side} margin ratio {current:.2f}% (threshold {threshold:.2f}%)")
        if current >= threshold:
            continue

        if not side.auto_margin:
            logger.warning(
                f"[{symbol}] {position.pos_side} margin ratio {current:.2f}% below threshold "
                f"{threshold:.2f}%, auto-margin disabled"
            )
            continue

        logger.info(
            f"[{symbol}] {position.pos_side} margin ratio {current:.2f}% below threshold "
            f"{threshold:.2f}%, adding {side.margin_amount:.4f}"
        )
        try:
            await add_margin(exchange, config, symbol, position.pos_side, side.margin_amount)
            adjusted += 1
        except Exception as e:
            logger.error(f"[{symbol}] Failed to add margin to {position.pos_side} position: {e}")
            failures.append(f"{position.pos_side}: {e}")

    if failures:
        raise MarginAdjustmentError(f"[{symbol}] Margin top-up failed: {'; '.join(failures)}")
    return adjusted
