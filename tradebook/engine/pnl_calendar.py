"""Per-day P&L for a calendar month.

Months are 1-indexed (1 = January). Days are the local calendar day of the
trade's entry date. Open trades count toward ``trade_count`` with a P&L of 0.
"""

import logging
import math
from typing import List

import pandas as pd

from tradebook.constants import validate_month
from tradebook.db.repository import TradeRepository
from tradebook.models.trade import CalendarDay, Trade

logger = logging.getLogger(__name__)


def _realized(trade: Trade) -> float:
    if trade.pnl is None:
        return 0.0
    if not math.isfinite(trade.pnl):
        logger.warning(f"Treating pnl {trade.pnl} of trade #{trade.id} as 0")
        return 0.0
    return trade.pnl


def compute_calendar(repo: TradeRepository, month: int, year: int) -> List[CalendarDay]:
    """Group the month's trades by entry day.

    Args:
        repo: Trade store (read only).
        month: 1-12.
        year: Four-digit year.

    Returns:
        One CalendarDay per day with at least one trade, in date order.

    Raises:
        ValueError: If month is outside 1..12.
    """
    validate_month(month)

    rows = [
        {
            "date": trade.entry_date.date(),
            "pnl": _realized(trade),
            "win": trade.pnl is not None and trade.pnl > 0,
        }
        for trade in repo.list_all()
        if trade.entry_date.year == year and trade.entry_date.month == month
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    daily = df.groupby("date", sort=True).agg(
        pnl=("pnl", "sum"),
        trade_count=("pnl", "size"),
        wins=("win", "sum"),
    )

    return [
        CalendarDay(
            date=day,
            pnl=float(row["pnl"]),
            trade_count=int(row["trade_count"]),
            win_rate=float(row["wins"]) / int(row["trade_count"]),
        )
        for day, row in daily.iterrows()
    ]
