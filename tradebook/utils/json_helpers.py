"""JSON serialization helpers for DuckDB rows and command output."""

import json
from decimal import Decimal
from datetime import date, datetime


def convert_to_json_serializable(value):
    """Convert non-JSON-serializable types to JSON-safe values.

    Usable as the ``default`` hook of ``json.dumps``.

    Args:
        value: Any value from a database query or calculation.

    Returns:
        JSON-serializable version of the value.
    """
    if isinstance(value, Decimal):
        return float(value)
    elif isinstance(value, (date, datetime)):
        return value.isoformat()
    elif value is None:
        return None
    return value


def convert_row_to_dict(row, columns):
    """Zip a database row with its column names.

    Args:
        row: Database row tuple/list.
        columns: List of column names.

    Returns:
        Dictionary with column names as keys and JSON-safe values.
    """
    return {k: convert_to_json_serializable(v) for k, v in zip(columns, row)}


def convert_rows_to_dicts(rows, columns):
    return [convert_row_to_dict(row, columns) for row in rows]


def dump_json_list(values) -> str:
    """Serialize tags/screenshots for storage; None becomes an empty array."""
    return json.dumps(list(values or []))


def load_json_list(text) -> list:
    """Parse a stored JSON array column.

    Empty and NULL columns give an empty list. A bare comma-separated string
    (as written by older imports) is split instead of rejected.
    """
    if text is None or text == "":
        return []
    if isinstance(text, list):
        return text
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return [part.strip() for part in str(text).split(",") if part.strip()]
    if isinstance(parsed, list):
        return [str(v) for v in parsed]
    return [str(parsed)]
