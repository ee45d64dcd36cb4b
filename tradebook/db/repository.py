"""Trade repository.

The engines only depend on the small ``TradeRepository`` protocol, so any
store (an in-memory fake in tests, DuckDB in the application) can be passed
in explicitly. ``DuckDBTradeRepository`` is the persistent implementation.
"""

import logging
from contextlib import contextmanager
from typing import ContextManager, Iterator, List, Optional, Protocol

import duckdb

from tradebook.db.schema import initialize_database
from tradebook.models.trade import Trade, TradeFilter
from tradebook.utils.json_helpers import convert_rows_to_dicts, dump_json_list, load_json_list
from tradebook.utils.time_helpers import format_for_storage, parse_stored_datetime

logger = logging.getLogger(__name__)

TRADE_COLUMNS = [
    "id", "symbol", "side", "quantity", "entry_price", "exit_price",
    "entry_date", "exit_date", "pnl", "commission", "strategy", "notes",
    "tags", "screenshots", "asset_type", "option_type", "strike_price",
    "expiration_date",
]

DATE_COLUMNS = {"entry_date", "exit_date", "expiration_date"}
JSON_LIST_COLUMNS = {"tags", "screenshots"}
UPDATABLE_COLUMNS = set(TRADE_COLUMNS) - {"id"}

SELECT_TRADES = f"SELECT {', '.join(TRADE_COLUMNS)} FROM trades"


class TradeRepository(Protocol):
    """What the matching, metrics and calendar engines need from a store."""

    def list_all(self) -> List[Trade]: ...

    def list_unmatched(self) -> List[Trade]: ...

    def insert(self, trade: Trade) -> int: ...

    def delete(self, trade_id: int) -> bool: ...

    def get(self, trade_id: int) -> Optional[Trade]: ...

    def transaction(self) -> ContextManager[None]: ...


class DuckDBTradeRepository:
    """DuckDB-backed trade store.

    Args:
        conn: Open DuckDB connection. The repository does not close it.
        timezone: pytz timezone name used to localize aware datetimes before
            they are written as offset-free local strings.
        initialize: Create the schema on construction.
    """

    def __init__(
        self,
        conn: duckdb.DuckDBPyConnection,
        timezone: str = None,
        initialize: bool = True,
    ) -> None:
        self.conn = conn
        self.timezone = timezone
        self._tx_depth = 0
        if initialize:
            initialize_database(conn)

    # ---------- unit of work ----------
    @contextmanager
    def transaction(self) -> Iterator[None]:
        """All-or-nothing block: commit on success, roll back and re-raise on error.

        Nested blocks join the outermost transaction.
        """
        if self._tx_depth:
            self._tx_depth += 1
            try:
                yield
            finally:
                self._tx_depth -= 1
            return

        self.conn.begin()
        self._tx_depth = 1
        try:
            yield
        except BaseException:
            self.conn.rollback()
            raise
        else:
            self.conn.commit()
        finally:
            self._tx_depth = 0

    # ---------- reads ----------
    def list_all(self) -> List[Trade]:
        return self._query(f"{SELECT_TRADES} ORDER BY entry_date, id")

    def list_unmatched(self) -> List[Trade]:
        return self._query(f"{SELECT_TRADES} WHERE pnl IS NULL ORDER BY entry_date, id")

    def get(self, trade_id: int) -> Optional[Trade]:
        trades = self._query(f"{SELECT_TRADES} WHERE id = ?", [trade_id])
        return trades[0] if trades else None

    def list_trades(self, filters: Optional[TradeFilter] = None) -> List[Trade]:
        """Return trades matching ``filters``, newest entry first.

        Date bounds compare calendar days, so an end date of 2025-01-31 keeps
        a trade entered at 2025-01-31T15:59:00.
        """
        filters = filters or TradeFilter()
        sql = f"{SELECT_TRADES} WHERE 1=1"
        params = []

        if filters.symbol:
            sql += " AND symbol ILIKE ?"
            params.append(f"%{filters.symbol}%")
        if filters.start_date:
            sql += " AND substr(entry_date, 1, 10) >= ?"
            params.append(filters.start_date.isoformat())
        if filters.end_date:
            sql += " AND substr(entry_date, 1, 10) <= ?"
            params.append(filters.end_date.isoformat())
        if filters.strategy:
            sql += " AND strategy = ?"
            params.append(filters.strategy)
        if filters.asset_type:
            sql += " AND asset_type = ?"
            params.append(filters.asset_type.upper())
        if filters.min_pnl is not None:
            sql += " AND pnl >= ?"
            params.append(filters.min_pnl)
        if filters.max_pnl is not None:
            sql += " AND pnl <= ?"
            params.append(filters.max_pnl)

        sql += " ORDER BY entry_date DESC, id DESC"
        trades = self._query(sql, params)

        if filters.tags:
            wanted = set(filters.tags)
            trades = [t for t in trades if wanted.issubset(t.tags)]
        return trades

    def count(self) -> int:
        return self.conn.execute("SELECT COUNT(*) FROM trades").fetchone()[0]

    # ---------- writes ----------
    def insert(self, trade: Trade) -> int:
        """Insert a trade and return its new id. ``trade.id`` is ignored."""
        values = self._to_row(trade)
        columns = [c for c in TRADE_COLUMNS if c != "id"]
        placeholders = ", ".join("?" for _ in columns)
        row = self.conn.execute(
            f"""
            INSERT INTO trades ({', '.join(columns)})
            VALUES ({placeholders})
            RETURNING id
            """,
            [values[c] for c in columns],
        ).fetchone()
        return row[0]

    def delete(self, trade_id: int) -> bool:
        deleted = self.conn.execute(
            "DELETE FROM trades WHERE id = ? RETURNING id", [trade_id]
        ).fetchall()
        return len(deleted) > 0

    def update(self, trade_id: int, **changes) -> bool:
        """Overwrite the given columns of one trade.

        The trade with the changes applied is validated before anything is
        written, so an update can never leave an unreadable row behind.

        Returns:
            False if no trade has this id.

        Raises:
            ValueError: If a key is not an updatable trade column, or the
                updated trade is invalid (pydantic ValidationError).
        """
        unknown = set(changes) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unknown trade fields: {', '.join(sorted(unknown))}")
        existing = self.get(trade_id)
        if existing is None:
            return False
        if not changes:
            return True

        merged = Trade.model_validate(
            {**existing.model_dump(), **changes},
            context={"timezone": self.timezone},
        )
        validated = merged.model_dump()

        assignments = []
        params = []
        for column in changes:
            assignments.append(f"{column} = ?")
            params.append(self._encode(column, validated[column]))
        params.append(trade_id)

        updated = self.conn.execute(
            f"""
            UPDATE trades SET {', '.join(assignments)}, updated_at = CURRENT_TIMESTAMP
            WHERE id = ?
            RETURNING id
            """,
            params,
        ).fetchall()
        return len(updated) > 0

    def purge(self) -> int:
        """Delete every trade and return how many rows were removed."""
        count = self.count()
        self.conn.execute("DELETE FROM trades")
        return count

    # ---------- row mapping ----------
    def _query(self, sql: str, params=None) -> List[Trade]:
        rows = self.conn.execute(sql, params or []).fetchall()
        trades = []
        for record in convert_rows_to_dicts(rows, TRADE_COLUMNS):
            trade = self._row_to_trade(record)
            if trade is not None:
                trades.append(trade)
        return trades

    def _row_to_trade(self, record: dict) -> Optional[Trade]:
        """Convert DB row -> Trade; malformed rows are logged and skipped."""
        try:
            data = dict(record)
            for column in DATE_COLUMNS:
                data[column] = parse_stored_datetime(data[column], self.timezone)
            for column in JSON_LIST_COLUMNS:
                data[column] = load_json_list(data[column])
            if data["commission"] is None:
                data["commission"] = 0.0
            return Trade(**data)
        except (ValueError, TypeError) as e:
            logger.warning(f"Skipping malformed trade row id={record.get('id')}: {e}")
            return None

    def _encode(self, column: str, value):
        if column in DATE_COLUMNS:
            if isinstance(value, str):
                value = parse_stored_datetime(value, self.timezone)
            return format_for_storage(value, self.timezone)
        if column in JSON_LIST_COLUMNS:
            return dump_json_list(value)
        if column in ("side", "asset_type", "option_type") and isinstance(value, str):
            return value.upper()
        return value

    def _to_row(self, trade: Trade) -> dict:
        data = trade.model_dump()
        return {column: self._encode(column, data[column]) for column in TRADE_COLUMNS}
