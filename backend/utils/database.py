"""
DuckDB client

Single embedded database holding the `locations` table.
"""

from pathlib import Path
from typing import Optional

import duckdb

from utils.config import get_settings
from utils.logger import logger

DDL = """
create table if not exists locations (
    id varchar not null,
    user_id varchar not null,
    name varchar not null,
    address varchar not null,
    latitude double not null,
    longitude double not null,
    rating integer not null check (rating between 1 and 5),
    notes varchar default '',
    tags varchar[],
    photos varchar[],
    visit_history json,
    created_at varchar
);
"""


def connect(db_path: str) -> duckdb.DuckDBPyConnection:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(db_path)


def init_db(conn: duckdb.DuckDBPyConnection) -> None:
    conn.execute(DDL)


_connection: Optional[duckdb.DuckDBPyConnection] = None


def get_database() -> duckdb.DuckDBPyConnection:
    """Return the shared DuckDB connection, creating the schema on first use"""
    global _connection

    if _connection is None:
        db_path = get_settings().DATABASE_PATH
        logger.info(f"📦 Opening DuckDB at {db_path}")
        _connection = connect(db_path)
        init_db(_connection)

    return _connection


def reset_database() -> None:
    """Close the shared connection (tests)"""
    global _connection
    if _connection is not None:
        _connection.close()
    _connection = None
