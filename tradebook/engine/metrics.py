"""Performance statistics over matched trades.

Only trades with realized P&L count. The date range is inclusive and
compared by calendar day: both bounds and each trade's entry date are
truncated to the local day first.

Profit factor is the ratio of the *average* win to the *average* loss,
``|average_win / average_loss|``, not gross profit over gross loss.
Sharpe ratio and max drawdown are reserved fields and stay 0.
"""

import logging
import math
from typing import List, Optional

from tradebook.constants import TOP_TRADES_LIMIT
from tradebook.db.repository import TradeRepository
from tradebook.models.trade import PerformanceMetrics, TopTrade, Trade
from tradebook.utils.time_helpers import DateLike, to_day

logger = logging.getLogger(__name__)

TOP_TRADE_FIELDS = set(TopTrade.model_fields)


def select_trades_in_range(
    trades: List[Trade],
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    tz_name: Optional[str] = None,
) -> List[Trade]:
    """Matched trades whose entry day is within [start_date, end_date].

    Trades with a non-finite P&L are logged and dropped.
    """
    start_day = to_day(start_date, tz_name)
    end_day = to_day(end_date, tz_name)

    selected = []
    for trade in trades:
        if not trade.is_matched:
            continue
        if not math.isfinite(trade.pnl):
            logger.warning(f"Skipping trade #{trade.id} ({trade.symbol}): pnl is {trade.pnl}")
            continue
        entry_day = trade.entry_date.date()
        if start_day and entry_day < start_day:
            continue
        if end_day and entry_day > end_day:
            continue
        selected.append(trade)
    return selected


def _project(trade: Trade) -> TopTrade:
    return TopTrade(**trade.model_dump(include=TOP_TRADE_FIELDS))


def top_winners(trades: List[Trade], limit: int = TOP_TRADES_LIMIT) -> List[TopTrade]:
    winners = [t for t in trades if t.pnl > 0]
    winners.sort(key=lambda t: (-t.pnl, t.entry_date, t.id or 0))
    return [_project(t) for t in winners[:limit]]


def top_losers(trades: List[Trade], limit: int = TOP_TRADES_LIMIT) -> List[TopTrade]:
    losers = [t for t in trades if t.pnl < 0]
    losers.sort(key=lambda t: (t.pnl, t.entry_date, t.id or 0))
    return [_project(t) for t in losers[:limit]]


def summarize(trades: List[Trade]) -> PerformanceMetrics:
    """Aggregate already-filtered matched trades into PerformanceMetrics."""
    if not trades:
        return PerformanceMetrics()

    pnls = [t.pnl for t in trades]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]

    total_trades = len(pnls)
    average_win = sum(wins) / len(wins) if wins else 0.0
    average_loss = sum(losses) / len(losses) if losses else 0.0
    profit_factor = abs(average_win / average_loss) if average_loss < 0 else 0.0

    return PerformanceMetrics(
        total_trades=total_trades,
        winning_trades=len(wins),
        losing_trades=len(losses),
        win_rate=len(wins) / total_trades,
        total_pnl=sum(pnls),
        average_win=average_win,
        average_loss=average_loss,
        profit_factor=profit_factor,
        largest_win=max(pnls),
        largest_loss=min(pnls),
        top_winners=top_winners(trades),
        top_losers=top_losers(trades),
    )


def compute_metrics(
    repo: TradeRepository,
    start_date: Optional[DateLike] = None,
    end_date: Optional[DateLike] = None,
    tz_name: Optional[str] = None,
) -> PerformanceMetrics:
    """Compute performance metrics for matched trades entered in a date range.

    Args:
        repo: Trade store (read only).
        start_date: First day included; None for no lower bound. Dates,
            datetimes and ISO strings are accepted.
        end_date: Last day included; None for no upper bound.
        tz_name: Timezone used to localize aware datetime bounds.

    Returns:
        PerformanceMetrics; all zeros and empty lists when nothing matches.
    """
    trades = select_trades_in_range(repo.list_all(), start_date, end_date, tz_name)
    metrics = summarize(trades)
    logger.debug(
        f"Metrics {start_date}..{end_date}: {metrics.total_trades} trades, "
        f"total pnl {metrics.total_pnl:.2f}"
    )
    return metrics
