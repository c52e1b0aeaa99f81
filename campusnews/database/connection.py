"""
CampusNews Database Connection Management
=========================================

Connection pool and transaction management for SQLite. Concurrent runs
coordinate only through the schema's uniqueness constraints, never through
locks held here.
"""

import sqlite3
import threading
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Generator, Any, Dict
from queue import Queue, Empty, Full

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Thread-safe SQLite database connection manager with pooling."""

    def __init__(self, db_path: str = "data/campusnews.db", pool_size: int = 5):
        """Initialize database connection manager.

        Args:
            db_path: Path to SQLite database file
            pool_size: Maximum number of connections in pool
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.pool: Queue = Queue(maxsize=pool_size)
        self.lock = threading.Lock()
        self._total_connections = 0

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._initialize_pool()

    def _initialize_pool(self) -> None:
        """Initialize the connection pool."""
        for _ in range(self.pool_size):
            self.pool.put(self._create_connection())

    def _create_connection(self) -> sqlite3.Connection:
        """Create a new SQLite connection."""
        conn = sqlite3.connect(
            self.db_path,
            check_same_thread=False,  # Pooled connections move between threads
            timeout=30.0,
        )

        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA synchronous = NORMAL")
        conn.execute("PRAGMA temp_store = MEMORY")

        conn.row_factory = sqlite3.Row

        with self.lock:
            self._total_connections += 1

        logger.debug(f"Created database connection #{self._total_connections}")
        return conn

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a connection from the pool with automatic return.

        Usage:
            with db_manager.get_connection() as conn:
                rows = conn.execute("SELECT * FROM news_sources").fetchall()
        """
        start_time = time.time()
        conn = None

        try:
            try:
                conn = self.pool.get(timeout=10.0)
            except Empty:
                logger.warning("Connection pool exhausted, creating new connection")
                conn = self._create_connection()

            conn.execute("SELECT 1").fetchone()

            acquisition_time = time.time() - start_time
            if acquisition_time > 1.0:
                logger.warning(f"Database connection acquisition took {acquisition_time:.2f}s")

            yield conn

        except sqlite3.IntegrityError:
            # Constraint conflicts are decided by the caller
            conn.rollback()
            raise
        except sqlite3.Error as e:
            logger.error(f"Database connection error: {e}")
            if conn:
                try:
                    conn.rollback()
                except sqlite3.Error:
                    pass
            raise
        finally:
            if conn:
                self._release(conn)

    def _release(self, conn: sqlite3.Connection) -> None:
        try:
            self.pool.put_nowait(conn)
        except Full:
            conn.close()
            with self.lock:
                self._total_connections -= 1

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Execute operations within a database transaction.

        Usage:
            with db_manager.transaction() as conn:
                conn.executemany("INSERT INTO news ...", rows)
                # Commit on success, rollback on exception
        """
        with self.get_connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
                yield conn
                conn.commit()
            except Exception as e:
                conn.rollback()
                logger.error(f"Transaction rolled back due to error: {e}")
                raise

    def execute_update(self, query: str, params: tuple = ()) -> int:
        """Execute an INSERT/UPDATE/DELETE query and return affected rows."""
        with self.get_connection() as conn:
            cursor = conn.execute(query, params)
            conn.commit()
            return cursor.rowcount

    def get_database_info(self) -> Dict[str, Any]:
        """Get database size and row counts."""
        with self.get_connection() as conn:
            page_count = conn.execute("PRAGMA page_count").fetchone()[0]
            page_size = conn.execute("PRAGMA page_size").fetchone()[0]

            table_counts = {}
            for table in ("news_sources", "news", "files"):
                try:
                    cursor = conn.execute(f"SELECT COUNT(*) FROM {table}")
                    table_counts[table] = cursor.fetchone()[0]
                except sqlite3.Error:
                    table_counts[table] = 0

            return {
                'database_size_mb': page_count * page_size / (1024 * 1024),
                'table_counts': table_counts,
                'connection_pool_size': self.pool.qsize(),
                'total_connections': self._total_connections
            }

    def close_all_connections(self) -> None:
        """Close all connections in the pool."""
        logger.debug("Closing all database connections")

        while not self.pool.empty():
            try:
                conn = self.pool.get_nowait()
                conn.close()
            except (Empty, sqlite3.Error):
                break

        with self.lock:
            self._total_connections = 0


# Global database manager instance
_db_manager: Optional[DatabaseConnection] = None


def get_db_manager(db_path: str = "data/campusnews.db", pool_size: int = 5) -> DatabaseConnection:
    """Get global database manager instance (singleton pattern).

    Args:
        db_path: Path to database file
        pool_size: Connections kept in the pool

    Returns:
        Database connection manager instance
    """
    global _db_manager

    if _db_manager is None:
        _db_manager = DatabaseConnection(db_path, pool_size=pool_size)

    return _db_manager
