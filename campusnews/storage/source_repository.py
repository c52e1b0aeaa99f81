"""
Source Repository
=================

Access to configured news sources. Ingestion only reads them; creation is
here for operators and fixtures.
"""

import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import NewsSource
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


class SourceRepository:
    """Repository for NewsSource rows."""

    def __init__(self, db_connection: DatabaseConnection):
        self.db = db_connection
        self.logger = get_logger_for_component("source_repository")

    def create_source(self, source: NewsSource) -> int:
        """Create a news source.

        Args:
            source: Source to create (``id`` is used when set)

        Returns:
            ID of the new source

        Raises:
            DatabaseError: If creation fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO news_sources (id, title, url, icon, hook)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (source.id, source.title, source.url, source.icon, source.hook),
                )
                conn.commit()
                source_id = cursor.lastrowid
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to create news source {source.title}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        self.logger.info(f"Created news source {source_id}: {source.title}")
        return source_id

    def get_source(self, source_id: int) -> Optional[NewsSource]:
        """Get a source by ID.

        Raises:
            DatabaseError: If the query fails
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM news_sources WHERE id = ?", (source_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get news source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return NewsSource(**dict(row)) if row else None

    def list_sources(self) -> List[NewsSource]:
        """All configured sources ordered by ID."""
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT * FROM news_sources ORDER BY id"
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list news sources: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return [NewsSource(**dict(row)) for row in rows]
