"""
Retention Sweeper
=================

Removes news older than the retention horizon, counted from ingestion
time rather than publication time.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from ..storage.news_repository import NewsRepository
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, RetentionSweepError


class RetentionSweeper:
    """Time-bounded delete of a source's news."""

    def __init__(self, news_repository: NewsRepository, retention_days: int = 365):
        self.news = news_repository
        self.retention = timedelta(days=retention_days)
        self.logger = get_logger_for_component("retention")

    def sweep(self, source_id: int, now: Optional[datetime] = None) -> int:
        """Delete news of ``source_id`` created before ``now - retention``.

        Returns:
            Number of deleted rows

        Raises:
            RetentionSweepError: If the delete fails
        """
        cutoff = (now or datetime.now(timezone.utc)) - self.retention
        self.logger.debug(
            f"Truncating news of source {source_id} created before {cutoff.isoformat()}"
        )

        try:
            deleted = self.news.delete_older_than(source_id, cutoff)
        except DatabaseError as e:
            self.logger.error(f"Failed to clean up old news for source {source_id}: {e}")
            raise RetentionSweepError(
                f"Retention sweep failed for source {source_id}: {e}",
                source_id=source_id,
            ) from e

        self.logger.info(
            f"Cleaned up {deleted} old news for source {source_id}",
            extra={"rows_affected": deleted},
        )
        return deleted
