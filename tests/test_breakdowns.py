"""Tests for the symbol, strategy and daily P&L breakdowns."""

from datetime import date

import pytest

from tradebook.engine.breakdowns import (
    compute_daily_pnl,
    compute_strategy_stats,
    compute_symbol_stats,
)


class TestSymbolStats:
    """Per-symbol totals, best first."""

    def test_sorted_by_total_pnl(self, repo, add_closed_trade, add_trade):
        add_closed_trade(pnl=50.0, symbol="AAPL")
        add_closed_trade(pnl=-20.0, symbol="AAPL")
        add_closed_trade(pnl=200.0, symbol="NVDA")
        add_closed_trade(pnl=-75.0, symbol="TSLA")
        add_trade(symbol="MSFT")

        stats = compute_symbol_stats(repo)

        assert [s.symbol for s in stats] == ["NVDA", "AAPL", "TSLA"]
        aapl = stats[1]
        assert aapl.trades == 2
        assert aapl.wins == 1
        assert aapl.pnl == pytest.approx(30.0)
        assert aapl.win_rate == pytest.approx(50.0)

    def test_limit(self, repo, add_closed_trade):
        for i in range(15):
            add_closed_trade(pnl=float(i), symbol=f"S{i:02d}")

        stats = compute_symbol_stats(repo, limit=10)

        assert len(stats) == 10
        assert stats[0].symbol == "S14"

    def test_no_matched_trades(self, repo, add_trade):
        add_trade()

        assert compute_symbol_stats(repo) == []


class TestStrategyStats:
    """Per-strategy totals."""

    def test_unlabelled_trades_excluded(self, repo, add_closed_trade):
        add_closed_trade(pnl=40.0, strategy="Breakout")
        add_closed_trade(pnl=-10.0, strategy="Breakout")
        add_closed_trade(pnl=25.0, strategy="Reversal")
        add_closed_trade(pnl=999.0)
        add_closed_trade(pnl=999.0, strategy="")

        stats = compute_strategy_stats(repo)

        assert [(s.strategy, s.trades, s.pnl) for s in stats] == [
            ("Breakout", 2, 30.0),
            ("Reversal", 1, 25.0),
        ]
        assert stats[0].win_rate == pytest.approx(50.0)

    def test_empty(self, repo):
        assert compute_strategy_stats(repo) == []


class TestDailyPnL:
    """Running total and drawdown from peak."""

    def test_cumulative_and_drawdown(self, repo, add_closed_trade):
        add_closed_trade(pnl=100.0, entry_date="2025-01-02T10:00:00")
        add_closed_trade(pnl=-50.0, entry_date="2025-01-03T10:00:00")
        add_closed_trade(pnl=20.0, entry_date="2025-01-06T10:00:00")

        daily = compute_daily_pnl(repo)

        assert [d.date for d in daily] == [date(2025, 1, 2), date(2025, 1, 3), date(2025, 1, 6)]
        assert [d.cumulative for d in daily] == [100.0, 50.0, 70.0]
        assert [d.peak for d in daily] == [100.0, 100.0, 100.0]
        assert [d.drawdown for d in daily] == pytest.approx([0.0, 50.0, 30.0])
        assert [(d.wins, d.losses, d.trades) for d in daily] == [(1, 0, 1), (0, 1, 1), (1, 0, 1)]

    def test_no_drawdown_before_a_positive_peak(self, repo, add_closed_trade):
        add_closed_trade(pnl=-30.0, entry_date="2025-01-02T10:00:00")
        add_closed_trade(pnl=-10.0, entry_date="2025-01-03T10:00:00")

        daily = compute_daily_pnl(repo)

        assert [d.peak for d in daily] == [0.0, 0.0]
        assert [d.drawdown for d in daily] == [0.0, 0.0]

    def test_booked_on_exit_day(self, repo, add_closed_trade):
        add_closed_trade(pnl=10.0, entry_date="2025-01-02T10:00:00", exit_date="2025-01-09T15:00:00")

        daily = compute_daily_pnl(repo)

        assert [d.date for d in daily] == [date(2025, 1, 9)]

    def test_look_back_window(self, repo, add_closed_trade):
        add_closed_trade(pnl=10.0, entry_date="2025-01-02T10:00:00")
        add_closed_trade(pnl=20.0, entry_date="2025-01-25T10:00:00")

        daily = compute_daily_pnl(repo, days=7, today=date(2025, 1, 28))

        assert [d.pnl for d in daily] == [20.0]
        assert daily[0].cumulative == 20.0
