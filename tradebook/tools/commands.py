"""Command surface for the journal application.

Each function is a thin wrapper around the engines that returns a plain dict
with a ``status`` of "success" or "error", ready to hand to a UI or print as
JSON. All of them take an optional ``repo``; by default they open the DuckDB
database named in the configuration.
"""

import logging
import os
from typing import Optional

from pydantic import ValidationError

from tradebook.db.connection import get_db_connection
from tradebook.db.repository import DuckDBTradeRepository, TradeRepository
from tradebook.engine.breakdowns import (
    compute_daily_pnl,
    compute_strategy_stats,
    compute_symbol_stats,
)
from tradebook.engine.matching import ReconciliationError, reconcile
from tradebook.engine.metrics import compute_metrics
from tradebook.engine.pnl_calendar import compute_calendar
from tradebook.models.config import AppConfig, load_config
from tradebook.models.trade import Trade, TradeFilter

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "TRADEBOOK_CONFIG"


def get_app_config() -> AppConfig:
    return load_config(os.environ.get(CONFIG_ENV_VAR, "config.yaml"))


def get_repository(config: Optional[AppConfig] = None) -> DuckDBTradeRepository:
    config = config or get_app_config()
    conn = get_db_connection(config.database.path)
    return DuckDBTradeRepository(conn, timezone=config.timezone)


def reconcile_pnl(repo: TradeRepository = None, max_iterations: int = None) -> dict:
    """Match open buys and sells into round-trip trades with realized P&L.

    Args:
        repo: Trade store; defaults to the configured database.
        max_iterations: Most matches applied in this run; defaults to
            ``matching.max_iterations`` from the configuration.

    Returns:
        dict with status, a human-readable message and the match count.
        A run cut short by the iteration limit is still a success and
        carries a "warning".
    """
    try:
        config = get_app_config()
        repo = repo or get_repository(config)
    except Exception as e:
        logger.error(f"Failed to open trade store: {e}")
        return {"status": "error", "reason": str(e), "matched": 0}
    max_iterations = max_iterations or config.matching.max_iterations

    try:
        result = reconcile(repo, max_iterations=max_iterations)
    except ReconciliationError as e:
        return {"status": "error", "reason": str(e), "matched": e.matched_count}

    response = {
        "status": "success",
        "message": result.message,
        "matched": result.matched_count,
    }
    if result.terminated_early:
        response["warning"] = (
            f"Iteration limit ({max_iterations}) reached; unmatched pairs remain."
        )
    return response


def get_performance_metrics(
    start_date: str = None,
    end_date: str = None,
    repo: TradeRepository = None,
) -> dict:
    """Performance metrics for matched trades entered between two days (inclusive).

    Args:
        start_date: First day (YYYY-MM-DD or ISO datetime), optional.
        end_date: Last day, optional.
        repo: Trade store; defaults to the configured database.

    Returns:
        dict with status and the metrics (see PerformanceMetrics).
    """
    config = get_app_config()
    try:
        repo = repo or get_repository(config)
        metrics = compute_metrics(repo, start_date, end_date, tz_name=config.timezone)
    except Exception as e:
        logger.error(f"Failed to get performance metrics: {e}")
        return {"status": "error", "reason": str(e)}
    return {"status": "success", "metrics": metrics.model_dump(mode="json")}


def get_calendar_data(month: int, year: int, repo: TradeRepository = None) -> dict:
    """Daily P&L, trade count and win rate for one month.

    Args:
        month: 1-12 (1 = January).
        year: Four-digit year.
        repo: Trade store; defaults to the configured database.

    Returns:
        dict with status and a list of days.
    """
    try:
        repo = repo or get_repository()
        days = compute_calendar(repo, month, year)
    except Exception as e:
        logger.error(f"Failed to get calendar data: {e}")
        return {"status": "error", "reason": str(e)}
    return {"status": "success", "days": [d.model_dump(mode="json") for d in days]}


def get_breakdowns(days: int = None, repo: TradeRepository = None) -> dict:
    """Per-symbol, per-strategy and daily realized P&L for the analytics view.

    Args:
        days: Look-back window for the daily series; None for all history.
        repo: Trade store; defaults to the configured database.
    """
    try:
        repo = repo or get_repository()
        symbols = compute_symbol_stats(repo)
        strategies = compute_strategy_stats(repo)
        daily = compute_daily_pnl(repo, days=days)
    except Exception as e:
        logger.error(f"Failed to get breakdowns: {e}")
        return {"status": "error", "reason": str(e)}
    return {
        "status": "success",
        "symbols": [s.model_dump(mode="json") for s in symbols],
        "strategies": [s.model_dump(mode="json") for s in strategies],
        "daily": [d.model_dump(mode="json") for d in daily],
    }


def save_trade(trade: dict, repo: DuckDBTradeRepository = None) -> dict:
    """Validate and store a new execution (P&L normally left empty).

    Returns:
        dict with status and the new trade id
    """
    repo = repo or get_repository()
    try:
        record = Trade.model_validate(trade, context={"timezone": repo.timezone})
    except ValidationError as e:
        return {"status": "error", "reason": str(e)}

    trade_id = repo.insert(record)
    logger.info(f"Saved trade #{trade_id}: {record.side} {record.quantity} {record.symbol}")
    return {"status": "success", "id": trade_id}


def get_trades(filters: dict = None, repo: DuckDBTradeRepository = None) -> dict:
    """List trades, newest first, optionally filtered.

    Args:
        filters: Keys of TradeFilter (symbol, start_date, end_date, strategy,
            asset_type, min_pnl, max_pnl, tags).
    """
    try:
        trade_filter = TradeFilter(**(filters or {}))
    except ValidationError as e:
        return {"status": "error", "reason": str(e)}

    repo = repo or get_repository()
    trades = repo.list_trades(trade_filter)
    return {
        "status": "success",
        "trades": [t.model_dump(mode="json") for t in trades],
        "count": len(trades),
    }


def update_trade(trade_id: int, changes: dict, repo: DuckDBTradeRepository = None) -> dict:
    repo = repo or get_repository()
    try:
        updated = repo.update(trade_id, **changes)
    except ValueError as e:
        return {"status": "error", "reason": str(e)}
    if not updated:
        return {"status": "error", "reason": f"Trade #{trade_id} not found"}
    return {"status": "success", "id": trade_id}


def delete_trade(trade_id: int, repo: TradeRepository = None) -> dict:
    repo = repo or get_repository()
    deleted = repo.delete(trade_id)
    return {"status": "success", "deleted": deleted}


def purge_trades(repo: DuckDBTradeRepository = None) -> dict:
    """Delete every trade in the journal."""
    repo = repo or get_repository()
    deleted = repo.purge()
    logger.warning(f"Purged {deleted} trade(s)")
    return {"status": "success", "deleted": deleted}
