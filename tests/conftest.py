"""Shared fixtures: an in-memory DuckDB journal and a trade factory."""

from datetime import datetime

import duckdb
import pytest

from tradebook.db.repository import DuckDBTradeRepository
from tradebook.models.trade import Trade


@pytest.fixture
def conn():
    conn = duckdb.connect(":memory:")
    yield conn
    conn.close()


@pytest.fixture
def repo(conn):
    return DuckDBTradeRepository(conn, timezone="America/New_York")


def make_trade(
    symbol="AAPL",
    side="BUY",
    quantity=100,
    entry_price=10.0,
    entry_date="2025-01-02T10:00:00",
    **fields,
) -> Trade:
    if isinstance(entry_date, str):
        entry_date = datetime.fromisoformat(entry_date)
    return Trade(
        symbol=symbol,
        side=side,
        quantity=quantity,
        entry_price=entry_price,
        entry_date=entry_date,
        **fields,
    )


@pytest.fixture
def add_trade(repo):
    """Insert a trade built by make_trade and return its id."""

    def _add(**kwargs) -> int:
        return repo.insert(make_trade(**kwargs))

    return _add


@pytest.fixture
def add_closed_trade(add_trade):
    """Insert an already-matched trade with the given realized pnl."""

    def _add(pnl, entry_date="2025-01-02T10:00:00", exit_date=None, **kwargs) -> int:
        exit_date = exit_date or entry_date
        if isinstance(exit_date, str):
            exit_date = datetime.fromisoformat(exit_date)
        kwargs.setdefault("exit_price", 11.0)
        return add_trade(pnl=pnl, entry_date=entry_date, exit_date=exit_date, **kwargs)

    return _add
