"""
Balance guard

Reserve-adjusted sufficiency check shared by the order executor and the
margin monitor.
"""

import logging
from dataclasses import dataclass
from typing import Iterable

from okxauto.constants import SETTLEMENT_CURRENCY
from okxauto.exceptions import InsufficientBalanceError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.schemas.exchange import Balance

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BalanceCheck:
    total: float  # USDT equity
    available: float  # Available USDT after the reserve
    required: float
    sufficient: bool


def check_balance(
    balances: Iterable[Balance], required: float, reserve: float, currency: str = SETTLEMENT_CURRENCY
) -> BalanceCheck:
    """
    Compare required funds against available balance minus the reserve.

    A currency missing from `balances` counts as zero.
    """
    total = 0.0
    available = 0.0
    for balance in balances:
        if balance.currency == currency:
            total = float(balance.balance)
            available = float(balance.available)
            break

    available -= reserve
    return BalanceCheck(total=total, available=available, required=required, sufficient=available >= required)


async def ensure_balance(exchange: ExchangeClient, required: float, reserve: float, context: str = "") -> BalanceCheck:
    """
    Fetch balances and verify `required` is covered.

    Raises:
        InsufficientBalanceError: available minus reserve is below required
    """
    result = check_balance(await exchange.get_balances(), required, reserve)
    prefix = f"[{context}] " if context else ""
    logger.info(
        f"{prefix}Balance check: total={result.total:.4f}, available={result.available:.4f} "
        f"(reserve {reserve:.4f}), required={result.required:.4f}"
    )
    if not result.sufficient:
        raise InsufficientBalanceError(
            f"{prefix}Insufficient balance: required {required:.4f} {SETTLEMENT_CURRENCY}, "
            f"available {result.available:.4f} after reserve {reserve:.4f}",
            required=required,
            available=result.available,
        )
    return result
