"""
OKX V5 Client

Thin async REST client for the OKX V5 API with:
- HMAC-SHA256 request signing
- Simulated-trading header toggle
- Shared request throttle (at most 6 requests per second per client)
- Retry of temporary failures on every call
- Response normalization into okxauto.schemas.exchange records
"""

import asyncio
import base64
import hashlib
import hmac
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import httpx

from okxauto.constants import OKX_BASE_URL, OKX_MIN_REQUEST_INTERVAL, OKX_REQUEST_TIMEOUT
from okxauto.exceptions import ExchangeError, ResponseDecodeError
from okxauto.exchange_clients.base import ExchangeClient
from okxauto.exchange_clients.retry import DEFAULT_RETRY_CONFIG, RetryConfig, retry_operation
from okxauto.schemas.exchange import Balance, Candle, OrderRequest, OrderResponse, Position

logger = logging.getLogger(__name__)


def _timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, as OKX expects."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _to_float(value: Any, field: str) -> float:
    """Parse an OKX numeric string. Empty values count as zero."""
    if value is None or value == "":
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ResponseDecodeError(f"Invalid numeric value for {field}: {value!r}") from e


def generate_client_order_id() -> str:
    """12-digit client order id derived from the current time."""
    return f"{time.time_ns() % 1_000_000_000_000:012d}"


def _check_response(result: Dict[str, Any]) -> Dict[str, Any]:
    """Raise ExchangeError if the OKX envelope reports a failure."""
    code = str(result.get("code", ""))
    if code != "0":
        msg = result.get("msg") or "Unknown OKX error"
        data = result.get("data") or []
        if data and isinstance(data[0], dict) and data[0].get("sCode") not in (None, "", "0"):
            msg = f"{data[0].get('sMsg', msg)} (sCode={data[0]['sCode']})"
        raise ExchangeError(f"OKX API error ({code}): {msg[:200]}", code=code)
    return result


class OKXClient(ExchangeClient):
    """
    OKX REST gateway.

    All requests share one throttle: the last request time is guarded by an
    asyncio.Lock, and callers wait for their turn before sending.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        passphrase: str,
        mode: str = "simulation",
        base_url: str = OKX_BASE_URL,
        retry_config: RetryConfig = DEFAULT_RETRY_CONFIG,
        min_interval: float = OKX_MIN_REQUEST_INTERVAL,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_key = api_key
        self._api_secret = api_secret
        self._passphrase = passphrase
        self.is_simulated = mode == "simulation"
        self._retry_config = retry_config
        self._min_interval = min_interval
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=OKX_REQUEST_TIMEOUT)

        self._rate_lock = asyncio.Lock()
        self._last_request_time: float = 0.0
        logger.info(f"OKXClient initialized ({'simulated' if self.is_simulated else 'live'} trading)")

    async def close(self):
        await self._http.aclose()

    # ----------------------------------------------------------
    # Transport
    # ----------------------------------------------------------

    def _sign(self, timestamp: str, method: str, request_path: str, body: str = "") -> str:
        message = timestamp + method + request_path + body
        mac = hmac.new(self._api_secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256)
        return base64.b64encode(mac.digest()).decode("utf-8")

    async def _throttle(self):
        """Wait until the minimum spacing since the previous request has passed."""
        async with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self._min_interval:
                await asyncio.sleep(self._min_interval - elapsed)
            self._last_request_time = time.monotonic()

    async def _send(self, method: str, request_path: str, body: str) -> Dict[str, Any]:
        """One throttled, signed HTTP exchange. No retries."""
        await self._throttle()

        timestamp = _timestamp()
        headers = {
            "Content-Type": "application/json",
            "OK-ACCESS-KEY": self._api_key,
            "OK-ACCESS-SIGN": self._sign(timestamp, method, request_path, body),
            "OK-ACCESS-TIMESTAMP": timestamp,
            "OK-ACCESS-PASSPHRASE": self._passphrase,
        }
        if self.is_simulated:
            headers["x-simulated-trading"] = "1"

        response = await self._http.request(method, request_path, headers=headers, content=body or None)

        if response.status_code == 429:
            raise ExchangeError("OKX API error (429): Too many requests", code="429", temporary=True)

        try:
            result = response.json()
        except ValueError as e:
            if response.status_code >= 400:
                raise ExchangeError(
                    f"OKX HTTP error {response.status_code}: {response.text[:200]}",
                    code=str(response.status_code),
                    temporary=response.status_code >= 500,
                ) from e
            raise ResponseDecodeError(f"Failed to decode OKX response: {response.text[:200]}") from e

        if not isinstance(result, dict):
            raise ResponseDecodeError(f"Unexpected OKX response shape: {str(result)[:200]}")

        return _check_response(result)

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Signed request with throttling and the retry policy applied."""
        request_path = path
        if params:
            request_path = f"{path}?{urlencode(params)}"
        body = json.dumps(data, separators=(",", ":")) if data is not None else ""

        return await retry_operation(lambda: self._send(method, request_path, body), self._retry_config)

    # ----------------------------------------------------------
    # Orders
    # ----------------------------------------------------------

    async def place_order(self, request: OrderRequest) -> OrderResponse:
        """Place an order. Fills client order id and trade mode defaults."""
        updates: Dict[str, Any] = {}
        if not request.cl_ord_id:
            updates["cl_ord_id"] = generate_client_order_id()
        if not request.td_mode:
            updates["td_mode"] = "isolated"
        try:
            updates["sz"] = f"{float(request.sz):.0f}"  # Contracts are whole numbers
        except ValueError:
            pass
        request = request.model_copy(update=updates)

        payload = request.to_payload()
        logger.info(f"[{request.inst_id}] Sending order request: {payload}")

        result = await self._request("POST", "/api/v5/trade/order", data=payload)
        logger.info(f"[{request.inst_id}] Order response: {result}")

        data = result.get("data") or []
        if not data:
            raise ExchangeError("Order response contained no data", temporary=False)

        item = data[0]
        if item.get("sCode") not in (None, "", "0"):
            raise ExchangeError(
                f"Order rejected: {item.get('sMsg', '')} (sCode={item['sCode']})",
                code=str(item["sCode"]),
            )

        return OrderResponse(
            order_id=item.get("ordId", ""),
            cl_ord_id=item.get("clOrdId", ""),
            tag=item.get("tag", ""),
            s_code=item.get("sCode", ""),
            s_msg=item.get("sMsg", ""),
        )

    async def cancel_order(self, symbol: str, order_id: str) -> None:
        await self._request("POST", "/api/v5/trade/cancel-order", data={"instId": symbol, "ordId": order_id})

    # ----------------------------------------------------------
    # Account / Positions
    # ----------------------------------------------------------

    async def get_balances(self) -> List[Balance]:
        result = await self._request("GET", "/api/v5/account/balance")

        data = result.get("data") or []
        if not data:
            raise ResponseDecodeError("Balance response contained no account data")

        logger.debug(f"Account total equity: {data[0].get('totalEq')} USDT")

        balances: List[Balance] = []
        for account in data:
            for detail in account.get("details") or []:
                equity = _to_float(detail.get("eq"), "eq")
                if equity > 0:
                    balances.append(
                        Balance(
                            currency=detail.get("ccy", ""),
                            balance=detail.get("eq", "0"),
                            available=detail.get("availEq") or "0",
                            frozen=detail.get("frozenBal") or "0",
                        )
                    )
        return balances

    async def get_positions(self, symbol: str) -> List[Position]:
        result = await self._request("GET", "/api/v5/account/positions", params={"instId": symbol})

        positions: List[Position] = []
        for item in result.get("data") or []:
            quantity = _to_float(item.get("pos"), "pos")
            if quantity == 0:
                continue
            position = Position(
                symbol=item.get("instId", symbol),
                pos_side=item.get("posSide", ""),
                quantity=quantity,
                avg_price=_to_float(item.get("avgPx"), "avgPx"),
                unrealized_pnl=_to_float(item.get("upl"), "upl"),
                pnl_ratio=_to_float(item.get("uplRatio"), "uplRatio"),
                margin_ratio=_to_float(item.get("mgnRatio"), "mgnRatio"),
            )
            logger.debug(
                f"[{position.symbol}] Position: side={position.pos_side}, qty={position.quantity:.2f}, "
                f"avg={position.avg_price:.4f}, pnl={position.pnl_ratio * 100:.2f}%, "
                f"margin={position.margin_ratio * 100:.2f}%"
            )
            positions.append(position)
        return positions

    async def set_leverage(self, symbol: str, leverage: int, margin_mode: str, pos_side: str = "") -> None:
        data = {"instId": symbol, "lever": str(leverage), "mgnMode": margin_mode}
        if pos_side:
            data["posSide"] = pos_side
        await self._request("POST", "/api/v5/account/set-leverage", data=data)

    async def add_margin(self, symbol: str, pos_side: str, amount: float) -> dict:
        data = {
            "instId": symbol,
            "posSide": pos_side,
            "amt": f"{amount:.4f}",
            "type": "add",
        }
        return await self._request("POST", "/api/v5/account/position/margin-balance", data=data)

    # ----------------------------------------------------------
    # Market Data
    # ----------------------------------------------------------

    async def get_klines(self, symbol: str, interval: str, limit: int) -> List[Candle]:
        result = await self._request(
            "GET", "/api/v5/market/candles", params={"instId": symbol, "bar": interval, "limit": limit}
        )

        candles: List[Candle] = []
        for row in result.get("data") or []:
            if len(row) >= 6:
                candles.append(
                    Candle(
                        timestamp=str(row[0]),
                        open=str(row[1]),
                        high=str(row[2]),
                        low=str(row[3]),
                        close=str(row[4]),
                        volume=str(row[5]),
                    )
                )
        return candles
