"""
CampusNews Database Schema
==========================

SQLite schema with the uniqueness constraints ingestion relies on:
- files: deduplicated media references, unique by name
- news_sources: configured feed origins
- news: ingested items, unique per (source_id, link)
"""

import sqlite3
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"files", "news", "news_sources"}


class DatabaseSchema:
    """Database schema manager for the CampusNews SQLite database."""

    def __init__(self, db_path: str = "data/campusnews.db"):
        """Initialize database schema manager.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def create_tables(self) -> None:
        """Create all database tables with proper schema."""
        with sqlite3.connect(self.db_path) as conn:
            conn.execute("PRAGMA foreign_keys = ON")

            # Create tables in dependency order
            self._create_files_table(conn)
            self._create_news_sources_table(conn)
            self._create_news_table(conn)

            self._create_indexes(conn)

            conn.commit()
            logger.info("Database schema created successfully")

    def _create_files_table(self, conn: sqlite3.Connection) -> None:
        """Create files table for media references awaiting download."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS files (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT UNIQUE NOT NULL,
                path TEXT NOT NULL,
                url TEXT,
                downloaded BOOLEAN DEFAULT FALSE
            )
        """
        )

    def _create_news_sources_table(self, conn: sqlite3.Connection) -> None:
        """Create news_sources table for configured feeds."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS news_sources (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                title TEXT NOT NULL,
                url TEXT,
                icon INTEGER,
                hook TEXT,
                FOREIGN KEY (icon) REFERENCES files(id) ON DELETE SET NULL
            )
        """
        )

    def _create_news_table(self, conn: sqlite3.Connection) -> None:
        """Create news table for ingested feed items."""
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS news (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_id INTEGER NOT NULL,
                date TIMESTAMP NOT NULL,
                created TIMESTAMP NOT NULL,
                title TEXT NOT NULL DEFAULT '',
                description TEXT NOT NULL DEFAULT '',
                link TEXT NOT NULL CHECK (link <> ''),
                image_url TEXT,
                file_id INTEGER,
                FOREIGN KEY (source_id) REFERENCES news_sources(id) ON DELETE CASCADE,
                FOREIGN KEY (file_id) REFERENCES files(id) ON DELETE SET NULL,
                UNIQUE(source_id, link)
            )
        """
        )

    def _create_indexes(self, conn: sqlite3.Connection) -> None:
        """Create indexes for the ingestion and serving queries."""
        indexes = [
            "CREATE INDEX IF NOT EXISTS idx_news_source_created ON news(source_id, created)",
            "CREATE INDEX IF NOT EXISTS idx_news_date ON news(date)",
            "CREATE INDEX IF NOT EXISTS idx_files_downloaded ON files(downloaded)",
        ]

        for index_sql in indexes:
            conn.execute(index_sql)

    def get_connection(self) -> sqlite3.Connection:
        """Get database connection with foreign keys enabled."""
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON")
        conn.row_factory = sqlite3.Row
        return conn

    def verify_schema(self) -> bool:
        """Verify database schema is correctly created."""
        conn = self.get_connection()
        try:
            cursor = conn.execute(
                """
                SELECT name FROM sqlite_master
                WHERE type='table' AND name NOT LIKE 'sqlite_%'
            """
            )
            tables = {row[0] for row in cursor.fetchall()}

            if not EXPECTED_TABLES.issubset(tables):
                logger.error(
                    f"Missing tables. Expected: {EXPECTED_TABLES}, Found: {tables}"
                )
                return False

            conn.execute("PRAGMA foreign_key_check")

            logger.info("Database schema verification passed")
            return True

        except sqlite3.Error as e:
            logger.error(f"Schema verification failed: {e}")
            return False
        finally:
            conn.close()
