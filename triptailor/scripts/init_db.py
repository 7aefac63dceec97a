"""
Create the PostGIS schema used by the place store.

Usage:
    python -m triptailor.scripts.init_db
    python -m triptailor.scripts.init_db --dry-run

All statements run in a single transaction; re-running is safe since every
CREATE uses IF NOT EXISTS.
"""

import argparse
import re
import sys
from pathlib import Path
from typing import List

import psycopg2

from triptailor.utils.config import settings
from triptailor.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

SCHEMA_FILE = Path(__file__).resolve().parent.parent / "storage" / "schema.sql"


def read_statements(path: Path = SCHEMA_FILE) -> List[str]:
    """
    Read a SQL file and split it into individual statements.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    if not path.exists():
        raise FileNotFoundError(f"SQL file not found: {path}")

    sql = path.read_text(encoding="utf-8")
    sql = re.sub(r"/\*.*?\*/", "", sql, flags=re.DOTALL)
    sql = re.sub(r"--[^\n]*", "", sql)
    return [s.strip() for s in sql.split(";") if s.strip()]


def apply_schema(database_url: str, statements: List[str]) -> int:
    """Execute `statements` in one transaction. Returns how many ran."""
    conn = psycopg2.connect(database_url)
    try:
        with conn:
            with conn.cursor() as cur:
                for i, statement in enumerate(statements, start=1):
                    logger.debug("schema_statement", num=i, total=len(statements), sql=statement[:80])
                    cur.execute(statement)
    finally:
        conn.close()
    return len(statements)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the TripTailor PostGIS schema")
    parser.add_argument("--dry-run", action="store_true", help="Print the statements without executing them")
    parser.add_argument("--database-url", default=None, help="Overrides DATABASE_URL")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    configure_logging(args.log_level)

    try:
        statements = read_statements()
    except FileNotFoundError as e:
        logger.error("schema_file_missing", error=str(e))
        return 1

    if args.dry_run:
        for statement in statements:
            print(statement + ";\n")
        logger.info("schema_dry_run", statements=len(statements))
        return 0

    database_url = args.database_url or settings.database_url
    try:
        count = apply_schema(database_url, statements)
    except psycopg2.Error as e:
        logger.error("schema_apply_failed", error=str(e), error_type=type(e).__name__)
        return 1

    logger.info("schema_applied", statements=count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
