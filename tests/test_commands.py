"""Tests for the command surface.

Commands never raise to the caller: every failure comes back as a dict with
status "error" and a reason.
"""

from datetime import datetime

import duckdb
import pytest

from tradebook.tools import commands


@pytest.fixture(autouse=True)
def default_config(monkeypatch, tmp_path):
    """Point the commands at a config file that does not exist (all defaults)."""
    monkeypatch.setenv(commands.CONFIG_ENV_VAR, str(tmp_path / "missing.yaml"))


class TestReconcilePnl:
    """reconcile_pnl wraps the matching engine."""

    def test_success_reports_count_and_message(self, repo, add_trade):
        add_trade(side="BUY", quantity=10, entry_price=10.0)
        add_trade(side="SELL", quantity=10, entry_price=12.0)

        result = commands.reconcile_pnl(repo=repo)

        assert result["status"] == "success"
        assert result["matched"] == 1
        assert "Matched 1" in result["message"]
        assert "warning" not in result

    def test_nothing_to_match(self, repo):
        result = commands.reconcile_pnl(repo=repo)

        assert result == {
            "status": "success",
            "message": "No unmatched buy/sell pairs found.",
            "matched": 0,
        }

    def test_iteration_limit_adds_warning(self, repo, add_trade):
        for _ in range(2):
            add_trade(side="BUY", quantity=1)
            add_trade(side="SELL", quantity=1)

        result = commands.reconcile_pnl(repo=repo, max_iterations=1)

        assert result["status"] == "success"
        assert result["matched"] == 1
        assert "Iteration limit (1)" in result["warning"]

    def test_storage_failure_becomes_error(self, monkeypatch, repo, add_trade):
        add_trade(side="BUY", quantity=1)
        add_trade(side="SELL", quantity=1)

        def failing_delete(trade_id):
            raise duckdb.IOException("disk full")

        monkeypatch.setattr(repo, "delete", failing_delete)

        result = commands.reconcile_pnl(repo=repo)

        assert result["status"] == "error"
        assert "disk full" in result["reason"]
        assert result["matched"] == 0

    def test_unreadable_store_becomes_error(self, monkeypatch, repo):
        def failing_list_unmatched():
            raise duckdb.IOException("store unreachable")

        monkeypatch.setattr(repo, "list_unmatched", failing_list_unmatched)

        result = commands.reconcile_pnl(repo=repo)

        assert result["status"] == "error"
        assert "store unreachable" in result["reason"]
        assert result["matched"] == 0

    def test_store_that_cannot_be_opened_becomes_error(self, monkeypatch):
        def failing_get_repository(config=None):
            raise duckdb.IOException("database is locked")

        monkeypatch.setattr(commands, "get_repository", failing_get_repository)

        result = commands.reconcile_pnl()

        assert result == {"status": "error", "reason": "database is locked", "matched": 0}


class TestReports:
    """Metrics, calendar and breakdown commands."""

    def test_metrics_are_json_ready(self, repo, add_closed_trade):
        add_closed_trade(pnl=80.0, entry_date="2025-01-02T10:00:00")
        add_closed_trade(pnl=-20.0, entry_date="2025-01-03T10:00:00")

        result = commands.get_performance_metrics("2025-01-01", "2025-01-31", repo=repo)

        assert result["status"] == "success"
        metrics = result["metrics"]
        assert metrics["total_trades"] == 2
        assert metrics["profit_factor"] == pytest.approx(4.0)
        assert metrics["top_winners"][0]["entry_date"] == "2025-01-02T10:00:00"

    def test_metrics_bad_date(self, repo):
        result = commands.get_performance_metrics("not a date", None, repo=repo)

        assert result["status"] == "error"
        assert result["reason"]

    def test_calendar_days(self, repo, add_closed_trade):
        add_closed_trade(pnl=12.0, entry_date="2025-04-09T10:00:00")

        result = commands.get_calendar_data(4, 2025, repo=repo)

        assert result == {
            "status": "success",
            "days": [{"date": "2025-04-09", "pnl": 12.0, "trade_count": 1, "win_rate": 1.0}],
        }

    def test_calendar_rejects_month_13(self, repo):
        result = commands.get_calendar_data(13, 2025, repo=repo)

        assert result["status"] == "error"
        assert "Invalid month" in result["reason"]

    def test_breakdowns(self, repo, add_closed_trade):
        add_closed_trade(pnl=12.0, symbol="AMD", strategy="Breakout")

        result = commands.get_breakdowns(repo=repo)

        assert result["status"] == "success"
        assert [s["symbol"] for s in result["symbols"]] == ["AMD"]
        assert [s["strategy"] for s in result["strategies"]] == ["Breakout"]
        assert result["daily"][0]["cumulative"] == 12.0


class TestTradeMaintenance:
    """Saving, listing, editing and removing trades."""

    def test_save_and_list(self, repo):
        saved = commands.save_trade(
            {
                "symbol": "QQQ",
                "side": "long",
                "quantity": 5,
                "entry_price": 410.5,
                "entry_date": "2025-01-02T09:35:00",
                "tags": ["open-drive"],
            },
            repo=repo,
        )

        assert saved["status"] == "success"
        listed = commands.get_trades({"symbol": "qqq"}, repo=repo)
        assert listed["count"] == 1
        trade = listed["trades"][0]
        assert trade["id"] == saved["id"]
        assert trade["side"] == "LONG"
        assert trade["entry_date"] == "2025-01-02T09:35:00"

    def test_save_rejects_invalid_side(self, repo):
        result = commands.save_trade(
            {
                "symbol": "QQQ",
                "side": "HOLD",
                "quantity": 5,
                "entry_price": 410.5,
                "entry_date": "2025-01-02T09:35:00",
            },
            repo=repo,
        )

        assert result["status"] == "error"
        assert repo.count() == 0

    @pytest.mark.parametrize("quantity", [0, -5])
    def test_save_rejects_non_positive_quantity(self, repo, quantity):
        result = commands.save_trade(
            {
                "symbol": "AAPL",
                "side": "BUY",
                "quantity": quantity,
                "entry_price": 190.0,
                "entry_date": "2025-01-02T09:35:00",
            },
            repo=repo,
        )

        assert result["status"] == "error"
        assert "quantity must be positive" in result["reason"]
        assert repo.count() == 0

    def test_save_localizes_offset_timestamps(self, repo):
        saved = commands.save_trade(
            {
                "symbol": "AAPL",
                "side": "BUY",
                "quantity": 1,
                "entry_price": 190.0,
                "entry_date": "2025-01-02T14:35:00Z",
            },
            repo=repo,
        )

        assert repo.get(saved["id"]).entry_date == datetime(2025, 1, 2, 9, 35)

    def test_get_trades_rejects_bad_filter(self, repo):
        result = commands.get_trades({"start_date": "someday"}, repo=repo)

        assert result["status"] == "error"

    def test_update_existing_and_missing(self, repo, add_trade):
        trade_id = add_trade()

        assert commands.update_trade(trade_id, {"notes": "checked"}, repo=repo) == {
            "status": "success",
            "id": trade_id,
        }
        assert repo.get(trade_id).notes == "checked"

        missing = commands.update_trade(999, {"notes": "x"}, repo=repo)
        assert missing["status"] == "error"
        assert "not found" in missing["reason"]

    def test_update_unknown_field(self, repo, add_trade):
        result = commands.update_trade(add_trade(), {"colour": "red"}, repo=repo)

        assert result["status"] == "error"

    @pytest.mark.parametrize("changes", [{"symbol": ""}, {"quantity": -5}, {"side": "HOLD"}])
    def test_update_rejects_invalid_values(self, repo, add_trade, changes):
        trade_id = add_trade(symbol="AAPL", quantity=100)

        result = commands.update_trade(trade_id, changes, repo=repo)

        assert result["status"] == "error"
        trade = repo.get(trade_id)
        assert trade.symbol == "AAPL"
        assert trade.quantity == 100

    def test_delete_and_purge(self, repo, add_trade):
        first = add_trade()
        add_trade()
        add_trade()

        assert commands.delete_trade(first, repo=repo) == {"status": "success", "deleted": True}
        assert commands.delete_trade(first, repo=repo) == {"status": "success", "deleted": False}
        assert commands.purge_trades(repo=repo) == {"status": "success", "deleted": 2}
