"""
DuckDB schema bootstrap
-----------------------
Creates the `locations` table at DATABASE_PATH (or --db-path) and reports how
many rows it already holds.
"""

import argparse
import sys
from pathlib import Path

# make backend packages importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from utils.config import get_settings
from utils.database import connect, init_db
from utils.logger import logger


def main() -> None:
    parser = argparse.ArgumentParser(prog="init-db")
    parser.add_argument("--db-path", default=None, help="DuckDB file (defaults to DATABASE_PATH)")
    args = parser.parse_args()

    db_path = args.db_path or get_settings().DATABASE_PATH
    conn = connect(db_path)
    try:
        init_db(conn)
        count = conn.execute("select count(*) from locations").fetchone()[0]
    finally:
        conn.close()

    logger.info(f"✅ Initialized DB at {db_path} ({count} locations)")


if __name__ == "__main__":
    main()
