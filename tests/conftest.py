"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for CampusNews tests.
"""

import pytest
import tempfile
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
_TEST_DIR = Path(tempfile.gettempdir()) / "campusnews_tests"
os.environ["CAMPUSNEWS_DATABASE__PATH"] = str(_TEST_DIR / "campusnews_test.db")
os.environ["CAMPUSNEWS_LOGGING__FILE_PATH"] = str(_TEST_DIR / "campusnews_test.log")
os.environ["CAMPUSNEWS_LIMITS__MAX_RETRIES"] = "0"
os.environ["CAMPUSNEWS_DEBUG"] = "true"


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture
def test_database(tmp_path):
    """Fresh database file with the full schema, one per test."""
    from campusnews.database.schema import DatabaseSchema

    db_path = tmp_path / "campusnews_test.db"
    DatabaseSchema(str(db_path)).create_tables()
    return str(db_path)


@pytest.fixture
def db_connection(test_database):
    """Create a database connection manager for testing."""
    from campusnews.database.connection import DatabaseConnection

    connection = DatabaseConnection(test_database, pool_size=2)
    yield connection

    connection.close_all_connections()


@pytest.fixture
def settings():
    from campusnews.config.settings import get_settings

    return get_settings()


@pytest.fixture
def source_repo(db_connection):
    from campusnews.storage.source_repository import SourceRepository

    return SourceRepository(db_connection)


@pytest.fixture
def news_repo(db_connection):
    from campusnews.storage.news_repository import NewsRepository

    return NewsRepository(db_connection)


@pytest.fixture
def file_repo(db_connection):
    from campusnews.storage.file_repository import FileRepository

    return FileRepository(db_connection)


@pytest.fixture
def sample_source(source_repo):
    """A stored source with a feed URL and no hook."""
    from campusnews.database.models import NewsSource

    source_id = source_repo.create_source(
        NewsSource(title="TUM News", url="https://example.com/news.xml")
    )
    return source_repo.get_source(source_id)


@pytest.fixture
def sample_items():
    """Feed items covering an image enclosure, a plain item and an empty link."""
    from campusnews.ingestion.feed_manager import Enclosure, FeedItem

    published = datetime(2024, 9, 5, 12, 0, tzinfo=timezone.utc)
    return [
        FeedItem(
            title="Semesterstart",
            link="https://example.com/semesterstart",
            description="<p>Willkommen <b>zurück</b></p>",
            published=published,
            enclosures=[Enclosure(url="https://cdn.example.com/start.jpg", type="image/jpeg")],
        ),
        FeedItem(
            title="Mensa",
            link="https://example.com/mensa",
            description="Neue Gerichte",
            published=published,
        ),
        FeedItem(title="No link", link="", description="ignored"),
    ]
