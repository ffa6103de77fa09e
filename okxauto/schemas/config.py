"""Engine configuration schemas (validated once at startup, read-only afterwards)"""

from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from okxauto.constants import DEFAULT_MIN_CLOSE_QUANTITY, DEFAULT_ORDER_QUANTITY


class EntryRange(BaseModel):
    min: float = 0.0
    max: float = 0.0

    model_config = ConfigDict(extra="forbid")

    def contains(self, price: float) -> bool:
        return self.min <= price <= self.max


class PositionSideConfig(BaseModel):
    """Range-entry and risk settings for one side (long or short)."""

    enabled: bool = False
    entry_range: EntryRange = Field(default_factory=EntryRange)
    take_profit: float = 0.0  # PnL ratio, e.g. 0.05 = 5%
    stop_loss: float = 0.0  # PnL ratio, compared against -stop_loss
    position_size: int = 0
    margin_ratio: float = 0.0  # Fraction; compared x100 against live margin ratio
    auto_margin: bool = False
    margin_amount: float = 0.0  # Fixed top-up amount in USDT
    symbol_margin_ratios: Dict[str, float] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")

    def margin_threshold_pct(self, symbol: str) -> float:
        """Threshold in percent: per-symbol override if present, else side default."""
        ratio = self.symbol_margin_ratios.get(symbol, self.margin_ratio)
        return ratio * 100


class GridConfig(BaseModel):
    enabled: bool = False
    upper_price: float = 0.0
    lower_price: float = 0.0
    grid_number: int = 0
    total_amount: float = 0.0

    model_config = ConfigDict(extra="forbid")


class RSIConfig(BaseModel):
    enabled: bool = False
    period: int = 14
    overbought_threshold: float = 70.0
    oversold_threshold: float = 30.0
    signal_confirmation: int = 1
    min_change: float = 0.0

    model_config = ConfigDict(extra="forbid")


class EngineConfig(BaseModel):
    """Trading engine configuration."""

    mode: Literal["simulation", "live"] = "simulation"
    trade_type: Literal["spot", "futures"] = "futures"
    leverage: int = Field(default=1, ge=1)
    margin_mode: Literal["cash", "cross", "isolated"] = "isolated"
    reserve_balance: float = Field(default=0.0, ge=0.0)
    symbols: List[str] = Field(default_factory=list)
    order_quantity: int = Field(default=DEFAULT_ORDER_QUANTITY, ge=1)
    min_close_quantity: int = Field(default=DEFAULT_MIN_CLOSE_QUANTITY, ge=1)

    long_position: PositionSideConfig = Field(default_factory=PositionSideConfig)
    short_position: PositionSideConfig = Field(default_factory=PositionSideConfig)
    grid_strategy: GridConfig = Field(default_factory=GridConfig)
    rsi_strategy: RSIConfig = Field(default_factory=RSIConfig)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _check_enabled_strategies(self) -> "EngineConfig":
        for name in ("long_position", "short_position"):
            side = getattr(self, name)
            if side.enabled and (side.take_profit <= 0 or side.stop_loss <= 0):
                raise ValueError(f"{name}.take_profit and {name}.stop_loss must be > 0 when enabled")
        grid = self.grid_strategy
        if grid.enabled:
            if grid.grid_number < 1:
                raise ValueError("grid_strategy.grid_number must be >= 1")
            if grid.upper_price <= grid.lower_price:
                raise ValueError("grid_strategy.upper_price must be greater than lower_price")
        rsi = self.rsi_strategy
        if rsi.enabled:
            if rsi.period < 2:
                raise ValueError("rsi_strategy.period must be >= 2")
            if rsi.oversold_threshold >= rsi.overbought_threshold:
                raise ValueError("rsi_strategy.oversold_threshold must be below overbought_threshold")
        return self

    @property
    def is_futures(self) -> bool:
        return self.trade_type == "futures"

    def side_config(self, pos_side: str) -> PositionSideConfig:
        """Long config for "long", short config otherwise (callers pass long/short only)."""
        return self.long_position if pos_side == "long" else self.short_position
