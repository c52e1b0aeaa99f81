"""
Unit Tests for the News Ingestion Engine
========================================

Runs the engine against a real SQLite schema with the feed service mocked.
"""

from datetime import datetime, timezone, timedelta
from unittest.mock import Mock, patch

import pytest

from campusnews.database.models import News, NewsSource
from campusnews.ingestion.feed_manager import Enclosure, FeedItem, ParsedFeed
from campusnews.processing.news_pipeline import NewsIngestionEngine
from campusnews.utils.exceptions import (
    BatchPersistError,
    DatabaseError,
    ExistingLinkQueryError,
    FeedFetchError,
    FeedParseError,
    ImageRegistrationError,
    IngestionError,
    RetentionSweepError,
)


def feed_of(*items, url="https://example.com/news.xml"):
    return ParsedFeed(url=url, title="Feed", items=list(items))


@pytest.fixture
def feed_manager():
    manager = Mock()
    manager.fetch_feed.return_value = feed_of()
    return manager


@pytest.fixture
def engine(db_connection, feed_manager, settings):
    return NewsIngestionEngine(db_connection, feed_manager=feed_manager, settings=settings)


class TestIngestSource:

    def test_source_without_url_is_skipped(self, engine, feed_manager, source_repo):
        source = source_repo.get_source(source_repo.create_source(NewsSource(title="Offline")))

        result = engine.ingest_source(source)

        assert result.skipped is True
        assert result.success is True
        feed_manager.fetch_feed.assert_not_called()

    def test_end_to_end_scenario(self, engine, feed_manager, sample_source, news_repo, file_repo):
        news_repo.create_news_batch([
            News(source_id=sample_source.id, date=datetime.now(timezone.utc), link="http://a")
        ])
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(title="A", link="http://a"),
            FeedItem(title="B", link="http://b"),
            FeedItem(
                title="C",
                link="http://c",
                enclosures=[Enclosure(url="http://img/c.jpg")],
            ),
        )

        result = engine.ingest_source(sample_source)

        assert result.new_entries == 2
        assert result.skipped_items == 1
        stored = {n.link: n for n in news_repo.get_news_for_source(sample_source.id)}
        assert set(stored) == {"http://a", "http://b", "http://c"}
        assert stored["http://b"].file_id is None
        assert stored["http://c"].file_id is not None
        assert stored["http://c"].image_url == "http://img/c.jpg"
        assert file_repo.count_files() == 1
        feed_manager.fetch_feed.assert_called_once_with(sample_source.url, timeout=None)

    def test_second_run_is_idempotent(self, engine, feed_manager, sample_source, sample_items, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)

        first = engine.ingest_source(sample_source)
        second = engine.ingest_source(sample_source)

        assert first.new_entries == 2
        assert second.new_entries == 0
        assert news_repo.count_for_source(sample_source.id) == 2

    def test_entry_fields(self, engine, feed_manager, sample_source, sample_items, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)
        before = datetime.now(timezone.utc)

        engine.ingest_source(sample_source)

        entry = {n.link: n for n in news_repo.get_news_for_source(sample_source.id)}[
            "https://example.com/semesterstart"
        ]
        assert entry.title == "Semesterstart"
        assert entry.description == "Willkommen zurück"
        assert entry.date == datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc)
        assert entry.created >= before

    def test_encoded_markup_in_description_is_stored_escaped(self, engine, feed_manager, sample_source, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(
                title="Encoded",
                link="http://enc",
                description="<p>Hi &lt;script&gt;alert(1)&lt;/script&gt; &amp; bye</p>",
            ),
        )

        engine.ingest_source(sample_source)

        stored = news_repo.get_news_for_source(sample_source.id)[0]
        assert stored.description == "Hi &lt;script&gt;alert(1)&lt;/script&gt; &amp; bye"
        assert "<" not in stored.description

    def test_missing_publish_date_falls_back(self, engine, feed_manager, sample_source, news_repo):
        updated = datetime(2024, 1, 2, tzinfo=timezone.utc)
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(title="U", link="http://u", updated=updated),
            FeedItem(title="N", link="http://n"),
        )

        engine.ingest_source(sample_source)

        stored = {n.link: n for n in news_repo.get_news_for_source(sample_source.id)}
        assert stored["http://u"].date == updated
        assert stored["http://n"].date == stored["http://n"].created

    def test_empty_link_always_skipped(self, engine, feed_manager, sample_source, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(FeedItem(title="x", link=""))

        result = engine.ingest_source(sample_source)

        assert result.new_entries == 0
        assert result.skipped_items == 1
        assert news_repo.count_for_source(sample_source.id) == 0

    def test_hook_applied_before_dedup(self, engine, feed_manager, source_repo, news_repo):
        source = source_repo.get_source(source_repo.create_source(
            NewsSource(title="Impulsiv", url="https://example.com/impulsiv", hook="impulsiv")
        ))
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(title="123", link="http://i/123"),
            FeedItem(title="Lösungen zur Ausgabe 137", link="http://i/137"),
        )

        engine.ingest_source(source)

        titles = {n.title for n in news_repo.get_news_for_source(source.id)}
        assert titles == {"Impulsiv - Ausgabe 123", "Impulsiv - Lösungen zur Ausgabe 137"}

    def test_newspread_hook_registers_body_image(self, engine, feed_manager, source_repo, news_repo, file_repo):
        image = "https://storage.googleapis.com/tum-newspread-de/assets/abc-123.jpeg"
        source = source_repo.get_source(source_repo.create_source(
            NewsSource(title="Newspread", url="https://example.com/np", hook="newspread")
        ))
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(
                title="With image",
                link="http://np/1",
                description="<p>Body</p>",
                content=f'<img src="{image}">',
            ),
            FeedItem(title="Without image", link="http://np/2", content="<p>none</p>"),
        )

        engine.ingest_source(source)

        stored = {n.link: n for n in news_repo.get_news_for_source(source.id)}
        assert stored["http://np/1"].description == ""
        assert stored["http://np/1"].image_url == image
        assert stored["http://np/1"].file_id is not None
        assert stored["http://np/2"].file_id is None
        assert file_repo.count_files() == 1

    def test_unknown_hook_is_ignored(self, engine, feed_manager, source_repo, news_repo):
        source = source_repo.get_source(source_repo.create_source(
            NewsSource(title="Odd", url="https://example.com/odd", hook="doesNotExist")
        ))
        feed_manager.fetch_feed.return_value = feed_of(FeedItem(title="Plain", link="http://o/1"))

        engine.ingest_source(source)

        assert news_repo.get_news_for_source(source.id)[0].title == "Plain"

    def test_image_failure_keeps_entry(self, engine, feed_manager, sample_source, sample_items, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)
        engine.image_resolver.register_file = Mock(
            side_effect=ImageRegistrationError("boom", url="https://cdn.example.com/start.jpg")
        )

        result = engine.ingest_source(sample_source)

        assert result.new_entries == 2
        assert result.image_failures == 1
        entry = {n.link: n for n in news_repo.get_news_for_source(sample_source.id)}[
            "https://example.com/semesterstart"
        ]
        assert entry.file_id is None
        assert entry.image_url == "https://cdn.example.com/start.jpg"

    def test_same_image_across_sources_shares_file(self, engine, feed_manager, source_repo, news_repo, file_repo):
        first = source_repo.get_source(source_repo.create_source(NewsSource(title="1", url="https://e/1")))
        second = source_repo.get_source(source_repo.create_source(NewsSource(title="2", url="https://e/2")))
        shared = [Enclosure(url="http://img/shared.png")]
        feed_manager.fetch_feed.side_effect = [
            feed_of(FeedItem(title="a", link="http://x/a", enclosures=shared)),
            feed_of(FeedItem(title="b", link="http://x/b", enclosures=shared)),
        ]

        engine.ingest_source(first)
        engine.ingest_source(second)

        assert file_repo.count_files() == 1
        assert (
            news_repo.get_news_for_source(first.id)[0].file_id
            == news_repo.get_news_for_source(second.id)[0].file_id
        )

    def test_duplicate_links_within_one_fetch_fail_the_batch(self, engine, feed_manager, sample_source, news_repo):
        feed_manager.fetch_feed.return_value = feed_of(
            FeedItem(title="first", link="http://dup"),
            FeedItem(title="second", link="http://dup"),
        )

        with pytest.raises(BatchPersistError) as exc_info:
            engine.ingest_source(sample_source)

        assert exc_info.value.item_count == 2
        assert news_repo.count_for_source(sample_source.id) == 0


class TestRetention:

    def test_old_entries_removed_before_fetch(self, engine, feed_manager, sample_source, news_repo):
        now = datetime.now(timezone.utc)
        news_repo.create_news_batch([
            News(source_id=sample_source.id, date=now, created=now - timedelta(days=400), link="http://old"),
            News(source_id=sample_source.id, date=now, created=now - timedelta(days=300), link="http://kept"),
        ])

        def fetch(url, timeout=None):
            assert news_repo.get_existing_links(sample_source.id) == {"http://kept"}
            return feed_of(FeedItem(title="old again", link="http://old"))

        feed_manager.fetch_feed.side_effect = fetch

        result = engine.ingest_source(sample_source)

        assert result.purged_entries == 1
        # the purged link is no longer in the baseline, so it is ingested again
        assert result.new_entries == 1
        assert news_repo.get_existing_links(sample_source.id) == {"http://old", "http://kept"}

    def test_sweep_failure_aborts_before_fetch(self, engine, feed_manager, sample_source):
        with patch.object(
            engine.news, "delete_older_than", side_effect=DatabaseError("locked")
        ):
            with pytest.raises(RetentionSweepError):
                engine.ingest_source(sample_source)

        feed_manager.fetch_feed.assert_not_called()


class TestFailurePolicy:

    @pytest.mark.parametrize("error", [
        FeedFetchError("unreachable", feed_url="https://example.com/news.xml"),
        FeedParseError("garbage", feed_url="https://example.com/news.xml"),
    ])
    def test_feed_errors_abort_the_source(self, engine, feed_manager, sample_source, news_repo, error):
        feed_manager.fetch_feed.side_effect = error

        with pytest.raises(type(error)):
            engine.ingest_source(sample_source)

        assert news_repo.count_for_source(sample_source.id) == 0

    def test_existing_link_query_failure(self, engine, feed_manager, sample_source, sample_items):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)

        with patch.object(
            engine.news, "get_existing_links", side_effect=DatabaseError("gone")
        ):
            with pytest.raises(ExistingLinkQueryError):
                engine.ingest_source(sample_source)

    def test_batch_failure_reports_count(self, engine, feed_manager, sample_source, sample_items):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)

        with patch.object(
            engine.news, "create_news_batch", side_effect=DatabaseError("disk full")
        ):
            with pytest.raises(BatchPersistError) as exc_info:
                engine.ingest_source(sample_source)

        assert exc_info.value.item_count == 2
        assert exc_info.value.context["source_id"] == sample_source.id

    def test_failures_do_not_cross_sources(self, engine, feed_manager, source_repo, news_repo):
        broken = source_repo.get_source(source_repo.create_source(NewsSource(title="Broken", url="https://e/broken")))
        healthy = source_repo.get_source(source_repo.create_source(NewsSource(title="Healthy", url="https://e/ok")))
        feed_manager.fetch_feed.side_effect = [
            FeedFetchError("unreachable", feed_url=broken.url),
            feed_of(FeedItem(title="ok", link="http://ok/1")),
        ]

        results = engine.ingest_sources([broken, healthy])

        assert [r.success for r in results] == [False, True]
        assert results[0].error_type == "FeedFetchError"
        assert results[1].new_entries == 1
        assert news_repo.count_for_source(healthy.id) == 1

    def test_unexpected_errors_are_contained(self, engine, feed_manager, sample_source):
        feed_manager.fetch_feed.side_effect = RuntimeError("surprise")

        results = engine.ingest_sources([sample_source])

        assert results[0].success is False
        assert results[0].error == "surprise"

    def test_ingest_all_covers_every_source(self, engine, feed_manager, source_repo):
        source_repo.create_source(NewsSource(title="With URL", url="https://e/1"))
        source_repo.create_source(NewsSource(title="Without URL"))

        results = engine.ingest_all()

        assert [r.skipped for r in results] == [False, True]
        assert feed_manager.fetch_feed.call_count == 1


class TestIngestSourceById:

    def test_null_id_is_skipped(self, engine, feed_manager):
        result = engine.ingest_source_by_id(None)

        assert result.skipped is True
        feed_manager.fetch_feed.assert_not_called()

    def test_unknown_id(self, engine):
        with pytest.raises(IngestionError):
            engine.ingest_source_by_id(12345)

    def test_known_id(self, engine, feed_manager, sample_source, sample_items):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)

        result = engine.ingest_source_by_id(sample_source.id)

        assert result.new_entries == 2

    def test_ids_are_isolated_from_each_other(self, engine, feed_manager, sample_source, sample_items):
        feed_manager.fetch_feed.return_value = feed_of(*sample_items)

        results = engine.ingest_source_ids([12345, None, sample_source.id])

        assert [r.source_id for r in results] == [12345, None, sample_source.id]
        assert results[0].success is False
        assert results[0].error_type == "IngestionError"
        assert results[1].skipped is True
        assert results[2].new_entries == 2
        feed_manager.fetch_feed.assert_called_once()
