"""
News Repository
===============

Data access for ingested news. Provides the per-source dedup baseline,
the batched insert used at the end of a run and the time-bounded delete
used by the retention sweep.
"""

import sqlite3
from datetime import datetime, timezone
from typing import List, Set

from ..database.models import News
from ..database.connection import DatabaseConnection
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, ErrorCode


def to_db_timestamp(value: datetime) -> str:
    """Render a datetime as a UTC ISO-8601 string so stored values sort lexically."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


class NewsRepository:
    """Repository for News rows."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize news repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("news_repository")

    def get_existing_links(self, source_id: int) -> Set[str]:
        """Load every link already stored for a source.

        A source without rows yields an empty set, not an error.

        Args:
            source_id: News source to scope the query to

        Returns:
            Set of stored links

        Raises:
            DatabaseError: If the query fails
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    "SELECT link FROM news WHERE source_id = ?", (source_id,)
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to fetch existing links for source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return {row["link"] for row in rows}

    def create_news_batch(self, entries: List[News]) -> int:
        """Insert multiple news rows in a single transaction.

        Either every row is written or none is.

        Args:
            entries: News to insert

        Returns:
            Number of rows inserted

        Raises:
            DatabaseError: If the batch insert fails
        """
        if not entries:
            return 0

        rows = [
            (
                entry.source_id,
                to_db_timestamp(entry.date),
                to_db_timestamp(entry.created),
                entry.title,
                entry.description,
                entry.link,
                entry.image_url,
                entry.file_id,
            )
            for entry in entries
        ]

        try:
            with self.db.transaction() as conn:
                conn.executemany(
                    """
                    INSERT INTO news
                    (source_id, date, created, title, description, link, image_url, file_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    rows,
                )
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to batch create {len(entries)} news: {e}",
                error_code=ErrorCode.DATABASE_TRANSACTION,
            ) from e

        return len(rows)

    def delete_older_than(self, source_id: int, cutoff: datetime) -> int:
        """Delete news of a source created before ``cutoff``.

        Args:
            source_id: News source to clean up
            cutoff: Rows with an earlier creation time are removed

        Returns:
            Number of rows deleted

        Raises:
            DatabaseError: If the delete fails
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    "DELETE FROM news WHERE source_id = ? AND created < ?",
                    (source_id, to_db_timestamp(cutoff)),
                )
                conn.commit()
                return cursor.rowcount
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to delete old news for source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

    def get_news_for_source(self, source_id: int, limit: int = 100) -> List[News]:
        """Get the most recently ingested news of a source.

        Args:
            source_id: News source
            limit: Maximum number of rows

        Returns:
            List of News, newest first
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM news
                    WHERE source_id = ?
                    ORDER BY created DESC, id DESC
                    LIMIT ?
                    """,
                    (source_id, limit),
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get news for source {source_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return [News(**dict(row)) for row in rows]

    def count_for_source(self, source_id: int) -> int:
        """Number of stored news for a source."""
        with self.db.get_connection() as conn:
            result = conn.execute(
                "SELECT COUNT(*) FROM news WHERE source_id = ?", (source_id,)
            ).fetchone()
            return result[0] if result else 0
