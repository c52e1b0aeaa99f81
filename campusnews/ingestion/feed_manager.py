"""
RSS Feed Manager
================

Fetches syndication feeds over HTTP and parses them with feedparser into
plain dataclasses the ingestion engine works on.

Items are passed through as the feed delivers them: empty links, missing
dates and odd enclosures are left for the engine to decide on.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional

import feedparser
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from campusnews.config.settings import get_settings
from campusnews.utils.logging import get_logger_for_component
from campusnews.utils.exceptions import FeedFetchError, FeedParseError, ErrorCode


@dataclass
class Enclosure:
    """Media attached to a feed item."""

    url: str
    type: str = ""
    length: int = 0


@dataclass
class FeedItem:
    """One feed entry with normalized fields."""

    title: str
    link: str
    description: str = ""
    content: str = ""
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    enclosures: List[Enclosure] = field(default_factory=list)


@dataclass
class ParsedFeed:
    """A fetched feed with its items in feed order."""

    url: str
    title: str
    items: List[FeedItem]


def _struct_to_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _extract_enclosures(entry: Mapping[str, Any]) -> List[Enclosure]:
    enclosures = []
    for enc in entry.get("enclosures") or []:
        if not isinstance(enc, Mapping):
            continue
        try:
            length = int(enc.get("length") or 0)
        except (TypeError, ValueError):
            length = 0
        enclosures.append(
            Enclosure(
                url=enc.get("href") or enc.get("url") or "",
                type=enc.get("type") or "",
                length=length,
            )
        )
    return enclosures


def _extract_item(entry: Mapping[str, Any]) -> FeedItem:
    content = ""
    content_list = entry.get("content")
    if content_list:
        content = content_list[0].get("value", "") or ""

    return FeedItem(
        title=(entry.get("title") or "").strip(),
        link=(entry.get("link") or "").strip(),
        description=entry.get("summary") or entry.get("description") or "",
        content=content,
        published=_struct_to_datetime(entry.get("published_parsed")),
        updated=_struct_to_datetime(entry.get("updated_parsed")),
        enclosures=_extract_enclosures(entry),
    )


def parse_feed_content(
    content: Any, feed_url: str, headers: Optional[Mapping[str, str]] = None
) -> ParsedFeed:
    """Parse an RSS/Atom document.

    Args:
        content: Raw feed bytes or text
        feed_url: URL the document came from, for error context
        headers: Response headers, used by feedparser for encoding detection

    Returns:
        ParsedFeed with items in document order

    Raises:
        FeedParseError: If the document is not a usable feed
    """
    parsed = feedparser.parse(content, response_headers=dict(headers or {}))

    # An empty but well-formed feed still has a version
    if not parsed.entries and not parsed.get("version"):
        reason = parsed.get("bozo_exception") or "not an RSS or Atom document"
        raise FeedParseError(
            f"Could not parse feed {feed_url}: {reason}",
            feed_url=feed_url,
        )

    return ParsedFeed(
        url=feed_url,
        title=(parsed.feed.get("title") or "").strip(),
        items=[_extract_item(entry) for entry in parsed.entries],
    )


class FeedManager:
    """
    Feed fetch/parse service.

    Retries on 429 and 5xx responses with exponential backoff. Every
    request carries a timeout, either the caller's or the configured one.
    """

    def __init__(self, settings=None, session: Optional[requests.Session] = None):
        """Initialize feed manager with configuration."""
        self.settings = settings or get_settings()
        self.logger = get_logger_for_component("feed_manager")

        if session is None:
            session = requests.Session()
            retry_strategy = Retry(
                total=self.settings.limits.max_retries,
                backoff_factor=self.settings.limits.backoff_factor,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["HEAD", "GET", "OPTIONS"],
            )
            adapter = HTTPAdapter(max_retries=retry_strategy)
            session.mount("http://", adapter)
            session.mount("https://", adapter)

        session.headers.update(
            {
                "User-Agent": self.settings.ingestion.user_agent,
                "Accept": "application/rss+xml, application/atom+xml, application/xml, text/xml",
            }
        )
        self.session = session

    def fetch_feed(self, feed_url: str, timeout: Optional[float] = None) -> ParsedFeed:
        """
        Fetch and parse a feed.

        Args:
            feed_url: Feed URL to fetch
            timeout: Request deadline in seconds (default from config)

        Returns:
            ParsedFeed with items in feed order

        Raises:
            FeedFetchError: If the feed cannot be retrieved
            FeedParseError: If the response is not a parseable feed
        """
        self.logger.debug(f"Fetching feed: {feed_url}")
        start_time = time.time()

        try:
            response = self.session.get(
                feed_url, timeout=timeout or self.settings.limits.request_timeout
            )
            response.raise_for_status()
        except requests.Timeout as e:
            raise FeedFetchError(
                f"Timed out fetching feed {feed_url}: {e}",
                feed_url=feed_url,
                error_code=ErrorCode.FEED_FETCH_TIMEOUT,
            ) from e
        except requests.RequestException as e:
            raise FeedFetchError(
                f"Failed to fetch feed {feed_url}: {e}", feed_url=feed_url
            ) from e

        self.logger.debug(
            f"Feed fetched in {time.time() - start_time:.2f}s, size: {len(response.content)} bytes"
        )

        feed = parse_feed_content(response.content, feed_url, response.headers)
        self.logger.info(f"Parsed {len(feed.items)} items from {feed_url}")
        return feed
