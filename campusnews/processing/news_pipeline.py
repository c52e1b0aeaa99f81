"""
News Ingestion Pipeline
=======================

Orchestrates one ingestion run per news source:

1. purge news past the retention horizon
2. fetch and parse the source's feed
3. load the links the source already has (the dedup baseline)
4. per item, in feed order: source transform, dedup, image registration,
   entry construction
5. write all new entries in one batch

A run processes one source synchronously. Runs for different sources
share no in-memory state; failures of one source are contained by
``ingest_sources`` (or ``ingest_source_ids``) and never reach the next
source.
"""

from datetime import datetime, timezone
from functools import partial
from typing import Callable, Iterable, List, Optional, Set

from ..config.settings import get_settings
from ..database.connection import DatabaseConnection
from ..database.models import IngestionResult, News, NewsSource
from ..ingestion.content_cleaner import ContentCleaner
from ..ingestion.dedup import is_duplicate
from ..ingestion.feed_manager import FeedItem, FeedManager
from ..ingestion.image_resolver import ImageResolver, pick_image
from ..ingestion.transforms import TransformRegistry, default_registry
from ..storage.file_repository import FileRepository
from ..storage.news_repository import NewsRepository
from ..storage.source_repository import SourceRepository
from ..utils.logging import PerformanceLogger, get_logger_for_component
from ..utils.exceptions import (
    BatchPersistError,
    CampusNewsError,
    DatabaseError,
    ErrorCode,
    ExistingLinkQueryError,
    FeedError,
    ImageRegistrationError,
    IngestionError,
)
from .retention import RetentionSweeper


class NewsIngestionEngine:
    """Feed ingestion engine for configured news sources."""

    def __init__(
        self,
        db_connection: DatabaseConnection,
        feed_manager: Optional[FeedManager] = None,
        transforms: Optional[TransformRegistry] = None,
        cleaner: Optional[ContentCleaner] = None,
        settings=None,
    ):
        """Initialize the engine.

        Args:
            db_connection: Database connection manager
            feed_manager: Feed fetch/parse service (default: HTTP FeedManager)
            transforms: Hook registry (default: built-in transforms)
            cleaner: Description sanitizer
            settings: Application settings (default: global settings)
        """
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("news_pipeline")

        self.news = NewsRepository(db_connection)
        self.sources = SourceRepository(db_connection)
        self.files = FileRepository(db_connection)

        self.feed_manager = feed_manager or FeedManager(self.settings)
        self.transforms = transforms or default_registry()
        self.cleaner = cleaner or ContentCleaner()
        self.image_resolver = ImageResolver(
            self.files, self.settings.ingestion.image_directory
        )
        self.retention = RetentionSweeper(
            self.news, self.settings.ingestion.retention_days
        )

    def ingest_source(
        self, source: NewsSource, timeout: Optional[float] = None
    ) -> IngestionResult:
        """Ingest new items of one source.

        Args:
            source: Source to ingest; sources without a URL are skipped
            timeout: Deadline for the feed request in seconds

        Returns:
            IngestionResult with the run's counts

        Raises:
            RetentionSweepError: Old news could not be purged, nothing was fetched
            FeedError: The feed could not be fetched or parsed
            ExistingLinkQueryError: The dedup baseline could not be loaded
            BatchPersistError: The batch write failed, nothing was persisted
        """
        result = IngestionResult(source_id=source.id)

        if not source.url:
            self.logger.debug(f"Skipping news source {source.id} without URL")
            result.skipped = True
            return result

        result.purged_entries = self.retention.sweep(source.id)

        self.logger.debug(
            f"Processing newsfeed {source.url}", extra={"source_id": source.id}
        )
        try:
            feed = self.feed_manager.fetch_feed(source.url, timeout=timeout)
        except FeedError as e:
            self.logger.error(f"Fetching feed of source {source.id} failed: {e}")
            raise

        existing_links = self._load_existing_links(source.id)
        transform = self.transforms.get(source.hook)

        batch: List[News] = []
        result.fetched_items = len(feed.items)
        for item in feed.items:
            item = transform(item)

            if is_duplicate(existing_links, item.link):
                result.skipped_items += 1
                continue

            batch.append(self._build_entry(source, item, result))

        if batch:
            self._persist_batch(source, batch)
            result.new_entries = len(batch)

        self.logger.info(
            f"Ingested {result.new_entries} new news for source {source.id}",
            extra={
                "source_id": source.id,
                "fetched_items": result.fetched_items,
                "skipped_items": result.skipped_items,
            },
        )
        return result

    def _load_existing_links(self, source_id: int) -> Set[str]:
        try:
            return self.news.get_existing_links(source_id)
        except DatabaseError as e:
            self.logger.error(f"Failed to fetch existing news for source {source_id}: {e}")
            raise ExistingLinkQueryError(
                f"Could not load existing links for source {source_id}: {e}",
                source_id=source_id,
            ) from e

    def _build_entry(
        self, source: NewsSource, item: FeedItem, result: IngestionResult
    ) -> News:
        created = datetime.now(timezone.utc)
        image_url = None
        file_id = None

        enclosure = pick_image(item)
        if enclosure is not None:
            image_url = enclosure.url
            try:
                stored_file = self.image_resolver.register_file(enclosure.url)
                file_id = stored_file.id
                result.images_registered += 1
            except ImageRegistrationError as e:
                self.logger.error(
                    f"Can't save news image: {e}", extra={"url": enclosure.url}
                )
                result.image_failures += 1

        return News(
            source_id=source.id,
            date=item.published or item.updated or created,
            created=created,
            title=item.title,
            description=self.cleaner.sanitize(item.description),
            link=item.link,
            image_url=image_url,
            file_id=file_id,
        )

    def _persist_batch(self, source: NewsSource, batch: List[News]) -> None:
        count = len(batch)
        try:
            self.news.create_news_batch(batch)
        except DatabaseError as e:
            self.logger.error(
                f"Inserting new news failed: {e}", extra={"new_news_count": count}
            )
            raise BatchPersistError(
                f"Failed to persist {count} news for source {source.id}: {e}",
                source_id=source.id,
                item_count=count,
            ) from e

        self.logger.debug(
            f"Inserted {count} new news", extra={"new_news_count": count}
        )

    def ingest_source_by_id(self, source_id: Optional[int]) -> IngestionResult:
        """Ingest a source referenced by a scheduled job.

        A job without a source ID is skipped with a warning.

        Raises:
            IngestionError: If no source has that ID
        """
        if source_id is None:
            self.logger.warning("Skipping news job, id of source is null")
            return IngestionResult(source_id=None, skipped=True)

        source = self.sources.get_source(source_id)
        if source is None:
            raise IngestionError(
                f"News source {source_id} does not exist",
                source_id=source_id,
                error_code=ErrorCode.SOURCE_NOT_FOUND,
            )
        return self.ingest_source(source)

    def _run_isolated(
        self, source_id: Optional[int], run: Callable[[], IngestionResult]
    ) -> IngestionResult:
        """Run one source, turning any failure into an unsuccessful result."""
        try:
            with PerformanceLogger(
                self.logger, f"ingestion of source {source_id}", source_id=source_id
            ):
                return run()
        except CampusNewsError as e:
            self.logger.warning(
                f"Ingestion of source {source_id} failed, continuing with next source",
                extra=e.to_dict(),
            )
            error = e
        except Exception as e:
            self.logger.error(
                f"Unexpected error ingesting source {source_id}: {e}", exc_info=True
            )
            error = e

        return IngestionResult(
            source_id=source_id,
            success=False,
            error=str(error),
            error_type=type(error).__name__,
        )

    def _log_totals(self, results: List[IngestionResult]) -> None:
        failed = sum(1 for r in results if not r.success)
        self.logger.info(
            f"Ingestion finished for {len(results)} sources, {failed} failed",
            extra={"source_count": len(results), "failed_sources": failed},
        )

    def ingest_sources(self, sources: Iterable[NewsSource]) -> List[IngestionResult]:
        """Ingest several sources, containing every failure to its own source.

        Returns:
            One IngestionResult per source, failed runs marked unsuccessful
        """
        results = [
            self._run_isolated(source.id, partial(self.ingest_source, source))
            for source in sources
        ]
        self._log_totals(results)
        return results

    def ingest_source_ids(
        self, source_ids: Iterable[Optional[int]]
    ) -> List[IngestionResult]:
        """Ingest sources referenced by ID, as scheduled jobs name them.

        Unknown IDs produce a failed result; null IDs a skipped one.
        """
        results = [
            self._run_isolated(source_id, partial(self.ingest_source_by_id, source_id))
            for source_id in source_ids
        ]
        self._log_totals(results)
        return results

    def ingest_all(self) -> List[IngestionResult]:
        """Ingest every configured source."""
        return self.ingest_sources(self.sources.list_sources())
