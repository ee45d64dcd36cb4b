from pydantic import BaseModel, Field, ValidationInfo, field_validator, model_validator
from datetime import date, datetime
from typing import List, Optional

from tradebook.constants import (
    ASSET_TYPES,
    DEFAULT_ASSET_TYPE,
    OPTION_TYPES,
    SIDES,
    normalize_side,
)
from tradebook.utils.time_helpers import to_local_naive

Day = date  # models below have a field named "date"


class Trade(BaseModel):
    id: Optional[int] = None
    symbol: str
    side: str  # BUY / SELL / LONG / SHORT
    quantity: float
    entry_price: float
    exit_price: Optional[float] = None
    entry_date: datetime
    exit_date: Optional[datetime] = None
    pnl: Optional[float] = None
    commission: float = 0.0
    strategy: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    screenshots: List[str] = Field(default_factory=list)
    asset_type: str = DEFAULT_ASSET_TYPE  # STOCK / OPTION / CRYPTO / FOREX
    option_type: Optional[str] = None  # CALL / PUT
    strike_price: Optional[float] = None
    expiration_date: Optional[datetime] = None

    @field_validator("symbol")
    @classmethod
    def _symbol_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("symbol must not be empty")
        return value

    @field_validator("entry_date", "exit_date", "expiration_date")
    @classmethod
    def _local_wall_clock(cls, value: Optional[datetime], info: ValidationInfo) -> Optional[datetime]:
        """Aware datetimes become naive local time (validation context "timezone")."""
        if value is None:
            return None
        tz_name = (info.context or {}).get("timezone")
        return to_local_naive(value, tz_name)

    @field_validator("side")
    @classmethod
    def _known_side(cls, value: str) -> str:
        value = value.strip().upper()
        if value not in SIDES:
            raise ValueError(f"side must be one of {SIDES}, got {value!r}")
        return value

    @field_validator("asset_type")
    @classmethod
    def _known_asset_type(cls, value: str) -> str:
        value = (value or DEFAULT_ASSET_TYPE).strip().upper()
        if value not in ASSET_TYPES:
            raise ValueError(f"asset_type must be one of {ASSET_TYPES}, got {value!r}")
        return value

    @field_validator("option_type")
    @classmethod
    def _known_option_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        value = value.strip().upper()
        if value not in OPTION_TYPES:
            raise ValueError(f"option_type must be one of {OPTION_TYPES}, got {value!r}")
        return value

    @field_validator("commission")
    @classmethod
    def _non_negative_commission(cls, value: float) -> float:
        if value < 0:
            raise ValueError("commission must be non-negative")
        return value

    @model_validator(mode="after")
    def _open_quantity_positive(self) -> "Trade":
        if self.pnl is None and self.quantity <= 0:
            raise ValueError(f"quantity must be positive for an open trade, got {self.quantity}")
        return self

    @property
    def is_matched(self) -> bool:
        """A trade with realized P&L is closed round-trip history."""
        return self.pnl is not None

    @property
    def direction(self) -> str:
        """BUY or SELL, with LONG/SHORT folded onto them."""
        return normalize_side(self.side)


class TradeFilter(BaseModel):
    symbol: Optional[str] = None  # substring match
    start_date: Optional[date] = None  # inclusive, by calendar day
    end_date: Optional[date] = None  # inclusive, by calendar day
    strategy: Optional[str] = None
    asset_type: Optional[str] = None
    min_pnl: Optional[float] = None
    max_pnl: Optional[float] = None
    tags: List[str] = Field(default_factory=list)  # trade must carry all of them


class TopTrade(BaseModel):
    symbol: str
    quantity: float
    entry_price: float
    exit_price: Optional[float] = None
    pnl: float
    entry_date: datetime
    exit_date: Optional[datetime] = None


class PerformanceMetrics(BaseModel):
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0  # fraction 0..1
    total_pnl: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
    profit_factor: float = 0.0  # |average_win / average_loss|
    sharpe_ratio: float = 0.0  # reserved, not computed
    max_drawdown: float = 0.0  # reserved, not computed
    largest_win: float = 0.0
    largest_loss: float = 0.0
    top_winners: List[TopTrade] = Field(default_factory=list)
    top_losers: List[TopTrade] = Field(default_factory=list)


class CalendarDay(BaseModel):
    date: Day
    pnl: float
    trade_count: int
    win_rate: float  # fraction 0..1


class ReconcileResult(BaseModel):
    matched_count: int = 0
    iterations: int = 0
    terminated_early: bool = False

    @property
    def message(self) -> str:
        if self.terminated_early:
            return (
                f"Matched {self.matched_count} trade pair(s); stopped at the iteration "
                "limit with unmatched pairs remaining. Run reconciliation again to continue."
            )
        if self.matched_count == 0:
            return "No unmatched buy/sell pairs found."
        return f"Matched {self.matched_count} trade pair(s)."


class SymbolStats(BaseModel):
    symbol: str
    trades: int
    pnl: float
    wins: int
    win_rate: float  # percent 0..100


class StrategyStats(BaseModel):
    strategy: str
    trades: int
    pnl: float
    wins: int
    win_rate: float  # percent 0..100


class DailyPnL(BaseModel):
    date: Day
    pnl: float
    wins: int
    losses: int
    trades: int
    cumulative: float
    peak: float
    drawdown: float  # percent below peak
