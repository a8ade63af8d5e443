"""
DuckDB connection and schema management for photo metadata.

A single connection is shared per database; capture and edit pipelines
write from worker threads, so every statement runs under one lock.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import duckdb

from ..logging_config import get_logger
from .schema import PHOTO_RECORD_COLUMNS, get_schema_statements, validate_schema_compatibility

logger = get_logger(__name__)

IN_MEMORY = ":memory:"

_COLUMNS_QUERY = "SELECT column_name FROM information_schema.columns WHERE table_name = 'photo_records'"


class DatabaseManager:
    """Owns the DuckDB connection for one metadata database."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: duckdb.DuckDBPyConnection | None = None
        self._lock = threading.RLock()

    def connect(self) -> duckdb.DuckDBPyConnection:
        """Open the connection on first use and return it."""
        if self._connection is None:
            self._connection = duckdb.connect(self.db_path)
            logger.info("database_connected", db_path=self.db_path)
        return self._connection

    def close(self) -> None:
        if self._connection is None:
            return
        self._connection.close()
        self._connection = None
        logger.info("database_closed", db_path=self.db_path)

    @contextmanager
    def _locked(self) -> Iterator[duckdb.DuckDBPyConnection]:
        with self._lock:
            yield self.connect()

    def initialize_schema(self) -> None:
        """
        Create the photo and privacy tables when missing.

        Raises:
            RuntimeError: If the table definition no longer matches PhotoRecord
            duckdb.Error: If a statement fails
        """
        if not validate_schema_compatibility():
            raise RuntimeError("Schema is not compatible with PhotoRecord model")

        with self._locked() as conn:
            for statement in get_schema_statements():
                try:
                    conn.execute(statement)
                except duckdb.Error as e:
                    logger.error("schema_statement_failed", statement=statement, error=str(e))
                    raise

        logger.info("database_schema_initialized", db_path=self.db_path)

    def verify_schema(self) -> bool:
        """True when photo_records exists with every PhotoRecord column."""
        try:
            rows = self.execute_query(_COLUMNS_QUERY)
        except duckdb.Error:
            return False

        missing = set(PHOTO_RECORD_COLUMNS) - {row[0] for row in rows}
        if missing:
            logger.warning("database_schema_incomplete", missing_columns=sorted(missing))
            return False
        return True

    def execute_query(self, query: str, parameters: tuple | list | None = None) -> list[tuple]:
        """
        Run one statement and fetch every resulting row.

        Raises:
            duckdb.Error: If the statement fails
        """
        with self._locked() as conn:
            try:
                result = conn.execute(query, parameters) if parameters else conn.execute(query)
                return result.fetchall()
            except duckdb.Error as e:
                logger.error("query_failed", query=query, error=str(e))
                raise

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def create_database(db_path: str) -> DatabaseManager:
    """
    Create the database file (and its directory) with a fresh schema.

    Raises:
        RuntimeError: If the schema cannot be created or verified
    """
    if db_path != IN_MEMORY:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    db_manager = DatabaseManager(db_path)
    try:
        db_manager.initialize_schema()
    except (RuntimeError, duckdb.Error) as e:
        db_manager.close()
        raise RuntimeError(f"Database creation failed: {e}") from e

    if not db_manager.verify_schema():
        db_manager.close()
        raise RuntimeError("Database creation failed: schema verification failed")

    logger.info("database_created", db_path=db_path)
    return db_manager


def get_database_manager(db_path: str, create_if_missing: bool = True) -> DatabaseManager:
    """
    Open an existing database, or create it when ``create_if_missing``.

    An existing file with an outdated schema is brought up to date in place.

    Raises:
        FileNotFoundError: If the file is missing and ``create_if_missing`` is False
    """
    if db_path == IN_MEMORY or not Path(db_path).exists():
        if not create_if_missing:
            raise FileNotFoundError(f"Database file not found: {db_path}")
        return create_database(db_path)

    db_manager = DatabaseManager(db_path)
    if not db_manager.verify_schema():
        logger.warning("database_schema_reinitializing", db_path=db_path)
        db_manager.initialize_schema()
    return db_manager
