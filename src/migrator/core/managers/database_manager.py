# src/migrator/core/managers/database_manager.py
import logging
import sqlite3
import threading
from pathlib import Path
from typing import List, Optional

from migrator.core.utils.path_utils import PathUtils
from migrator.database_schema import DEFAULT_SCHEMA_SCRIPT

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Low-level SQLite access for the fragment store.

    Owns one cached connection to the migration database (WAL mode, foreign
    keys on, rows as sqlite3.Row) and runs raw SQL. No pipeline logic lives
    here; FragmentStore holds every statement. Failures are logged and
    re-raised so that a stage which cannot persist aborts.
    """

    def __init__(self, db_path: Optional[Path] = None):
        """`db_path` defaults to migration_data.db under the cache root."""
        self.db_path = Path(db_path) if db_path else PathUtils.get_db_path()
        self._conn: Optional[sqlite3.Connection] = None
        self._conn_lock = threading.Lock()
        logger.debug("DatabaseManager initialized at: %s", self.db_path)

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # --- CONNECTION METHODS ---

    def get_connection(self) -> sqlite3.Connection:
        """
        Returns the open connection, reconnecting if the cached one is dead.
        Creates the database directory if it does not exist.
        """
        with self._conn_lock:
            if self._conn is not None:
                try:
                    self._conn.execute("SELECT 1;")
                    return self._conn
                except sqlite3.Error:
                    # Connection is dead, drop it and reconnect
                    self._conn = None

            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                conn = sqlite3.connect(
                    str(self.db_path),
                    isolation_level=None,  # Autocommit mode
                    check_same_thread=False
                )
                conn.execute("PRAGMA journal_mode=WAL;")
                conn.execute("PRAGMA synchronous=NORMAL;")
                conn.execute("PRAGMA foreign_keys = ON;")
                conn.row_factory = sqlite3.Row
                self._conn = conn
                return conn
            except sqlite3.Error as e:
                logger.error("Fatal error opening DB %s: %s", self.db_path, e, exc_info=True)
                raise

    def close(self) -> None:
        """Closes the connection and forces a WAL checkpoint to clean up files."""
        with self._conn_lock:
            if self._conn is None:
                return
            try:
                self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE);")
                self._conn.close()
            except sqlite3.Error as e:
                logger.debug("Could not checkpoint/close connection: %s", e)
            finally:
                self._conn = None
        logger.debug("Connection to %s closed.", self.db_path)

    # --- EXECUTION METHODS ---

    def execute_query(self, query: str, params: tuple = ()) -> None:
        """Runs a statement whose result is not needed."""
        conn = self.get_connection()
        try:
            with conn:
                conn.execute(query, params)
        except sqlite3.Error as e:
            logger.error("Query failed: %s | Query: %s", e, query)
            raise

    def execute_insert(self, query: str, params: tuple = ()) -> int:
        """Executes an INSERT statement and returns the `lastrowid`."""
        conn = self.get_connection()
        try:
            with conn:
                cursor = conn.execute(query, params)
                return cursor.lastrowid
        except sqlite3.Error as e:
            logger.error("Insert failed: %s | Query: %s", e, query)
            raise

    def execute_script(self, script: str) -> None:
        """Runs several statements at once, e.g. the schema script."""
        conn = self.get_connection()
        try:
            with conn:
                conn.executescript(script)
        except sqlite3.Error as e:
            logger.error("Script execution failed: %s", e)
            raise

    # --- READ METHODS ---

    def fetch_all(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Executes a query and returns all rows (mapping-style access by column name)."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params)
            return cursor.fetchall()
        except sqlite3.Error as e:
            logger.error("Fetch failed: %s | Query: %s", e, query)
            raise

    def fetch_one(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        """Executes a query and returns a single row, or None."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(query, params)
            return cursor.fetchone()
        except sqlite3.Error as e:
            logger.error("Fetch failed: %s | Query: %s", e, query)
            raise

    # --- MAINTENANCE ---

    def clear_tables(self, table_names: List[str]) -> None:
        """Deletes all rows from the specified tables."""
        if not table_names:
            return
        conn = self.get_connection()
        try:
            with conn:
                for table in table_names:
                    conn.execute(f"DELETE FROM {table}")
            logger.debug("Cleared tables: %s", ", ".join(table_names))
        except sqlite3.Error as e:
            logger.error("Failed to clear tables %s: %s", table_names, e)
            raise

    # --- SCHEMA METHODS ---

    def init_schema(self) -> None:
        """Initializes the database schema using DEFAULT_SCHEMA_SCRIPT."""
        self.execute_script(DEFAULT_SCHEMA_SCRIPT)
