import duckdb


SEQUENCES_DDL = [
    "CREATE SEQUENCE IF NOT EXISTS trades_id_seq",
]

TABLES_DDL = [
    # Dates are local wall-clock strings (YYYY-MM-DDTHH:MM:SS), no UTC offset.
    # tags / screenshots hold JSON arrays.
    """
    CREATE TABLE IF NOT EXISTS trades (
        id INTEGER DEFAULT nextval('trades_id_seq') PRIMARY KEY,
        symbol VARCHAR NOT NULL,
        side VARCHAR NOT NULL CHECK (side IN ('BUY', 'SELL', 'LONG', 'SHORT')),
        quantity DOUBLE NOT NULL,
        entry_price DOUBLE NOT NULL,
        exit_price DOUBLE,
        entry_date VARCHAR NOT NULL,
        exit_date VARCHAR,
        pnl DOUBLE,
        commission DOUBLE DEFAULT 0,
        strategy VARCHAR,
        notes TEXT,
        tags TEXT,
        screenshots TEXT,
        asset_type VARCHAR NOT NULL CHECK (asset_type IN ('STOCK', 'OPTION', 'CRYPTO', 'FOREX')),
        option_type VARCHAR CHECK (option_type IN ('CALL', 'PUT')),
        strike_price DOUBLE,
        expiration_date VARCHAR,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def initialize_database(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the trades sequence and table if they do not exist.

    No secondary indexes: DuckDB turns updates of indexed columns into
    delete + insert, which collides with the primary key.
    """
    # Sequence first (table default references it)
    for seq in SEQUENCES_DDL:
        conn.execute(seq)

    for ddl in TABLES_DDL:
        conn.execute(ddl)
