import duckdb
from functools import lru_cache
from pathlib import Path


@lru_cache(maxsize=1)
def get_db_connection(db_path: str = None) -> duckdb.DuckDBPyConnection:
    if db_path is None:
        from tradebook.models.config import load_config
        db_path = load_config().database.path
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    conn = duckdb.connect(db_path)
    return conn
