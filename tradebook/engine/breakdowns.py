"""Symbol, strategy and daily breakdowns of realized P&L for the analytics view."""

from datetime import date, timedelta
from typing import List, Optional

import pandas as pd

from tradebook.constants import TOP_SYMBOLS_LIMIT
from tradebook.db.repository import TradeRepository
from tradebook.models.trade import DailyPnL, StrategyStats, SymbolStats
from tradebook.utils.time_helpers import now_local


def _matched_frame(repo: TradeRepository) -> pd.DataFrame:
    rows = [
        {
            "symbol": t.symbol,
            "strategy": t.strategy,
            "pnl": t.pnl,
            "pnl_date": (t.exit_date or t.entry_date).date(),
        }
        for t in repo.list_all()
        if t.is_matched
    ]
    return pd.DataFrame(rows, columns=["symbol", "strategy", "pnl", "pnl_date"])


def _group_stats(df: pd.DataFrame, key: str) -> pd.DataFrame:
    grouped = df.assign(win=df["pnl"] > 0).groupby(key).agg(
        trades=("pnl", "size"),
        pnl=("pnl", "sum"),
        wins=("win", "sum"),
    )
    grouped["win_rate"] = grouped["wins"] / grouped["trades"] * 100
    return grouped.sort_values("pnl", ascending=False, kind="stable")


def compute_symbol_stats(repo: TradeRepository, limit: int = TOP_SYMBOLS_LIMIT) -> List[SymbolStats]:
    """Best ``limit`` symbols by total realized P&L."""
    df = _matched_frame(repo)
    if df.empty:
        return []
    stats = _group_stats(df, "symbol").head(limit)
    return [
        SymbolStats(
            symbol=symbol,
            trades=int(row["trades"]),
            pnl=float(row["pnl"]),
            wins=int(row["wins"]),
            win_rate=float(row["win_rate"]),
        )
        for symbol, row in stats.iterrows()
    ]


def compute_strategy_stats(repo: TradeRepository) -> List[StrategyStats]:
    """Realized P&L per strategy label; unlabelled trades are left out."""
    df = _matched_frame(repo)
    df = df[df["strategy"].notna() & (df["strategy"] != "")]
    if df.empty:
        return []
    return [
        StrategyStats(
            strategy=strategy,
            trades=int(row["trades"]),
            pnl=float(row["pnl"]),
            wins=int(row["wins"]),
            win_rate=float(row["win_rate"]),
        )
        for strategy, row in _group_stats(df, "strategy").iterrows()
    ]


def compute_daily_pnl(
    repo: TradeRepository,
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> List[DailyPnL]:
    """Daily realized P&L with running total and drawdown from peak.

    A trade is booked on the day it was closed (exit date, or entry date when
    no exit date is recorded). Drawdown is ``(peak - cumulative) / peak * 100``
    and 0 while the running peak is not positive.

    Args:
        repo: Trade store (read only).
        days: Only include the last ``days`` days up to ``today``.
        today: Reference day for ``days``; defaults to the local current day.
    """
    df = _matched_frame(repo)
    if days is not None and not df.empty:
        cutoff = (today or now_local().date()) - timedelta(days=days)
        df = df[df["pnl_date"] >= cutoff]
    if df.empty:
        return []

    daily = df.assign(win=df["pnl"] > 0, loss=df["pnl"] < 0).groupby("pnl_date", sort=True).agg(
        pnl=("pnl", "sum"),
        wins=("win", "sum"),
        losses=("loss", "sum"),
        trades=("pnl", "size"),
    )
    daily["cumulative"] = daily["pnl"].cumsum()
    daily["peak"] = daily["cumulative"].cummax().clip(lower=0)
    daily["drawdown"] = 0.0
    positive_peak = daily["peak"] > 0
    daily.loc[positive_peak, "drawdown"] = (
        (daily["peak"] - daily["cumulative"]) / daily["peak"] * 100
    )[positive_peak]

    return [
        DailyPnL(
            date=day,
            pnl=float(row["pnl"]),
            wins=int(row["wins"]),
            losses=int(row["losses"]),
            trades=int(row["trades"]),
            cumulative=float(row["cumulative"]),
            peak=float(row["peak"]),
            drawdown=float(row["drawdown"]),
        )
        for day, row in daily.iterrows()
    ]
