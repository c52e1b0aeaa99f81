"""
CampusNews Custom Exceptions
============================

Custom exception hierarchy for the news ingestion service with error codes,
context information and a recoverable flag used by the per-source run
boundary to decide what to log and what to surface.
"""

from typing import Optional, Dict, Any
from enum import Enum


class ErrorCode(str, Enum):
    """Error codes for categorizing exceptions."""

    # Configuration errors (C001-C099)
    CONFIG_INVALID = "C001"
    CONFIG_MISSING = "C002"

    # Database errors (D001-D099)
    DATABASE_CONNECTION = "D001"
    DATABASE_SCHEMA = "D002"
    DATABASE_CONSTRAINT = "D003"
    DATABASE_TRANSACTION = "D004"
    DATABASE_ERROR = "D006"

    # Feed errors (F001-F099)
    FEED_INVALID_URL = "F001"
    FEED_FETCH_TIMEOUT = "F002"
    FEED_PARSE_ERROR = "F003"
    FEED_NETWORK_ERROR = "F004"

    # Ingestion errors (I001-I099)
    RETENTION_SWEEP_FAILED = "I001"
    EXISTING_LINK_QUERY_FAILED = "I002"
    IMAGE_REGISTRATION_FAILED = "I003"
    BATCH_PERSIST_FAILED = "I004"
    SOURCE_NOT_FOUND = "I005"


class CampusNewsError(Exception):
    """Base exception for all CampusNews errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        recoverable: bool = False,
    ):
        """Initialize CampusNews error.

        Args:
            message: Technical error message for logging
            error_code: Categorized error code
            context: Additional context information
            user_message: User-friendly error message
            recoverable: Whether the error is recoverable
        """
        super().__init__(message)
        self.error_code = error_code
        self.context = context or {}
        self.user_message = user_message or message
        self.recoverable = recoverable

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code.value if self.error_code else None,
            "error_message": str(self),
            "user_message": self.user_message,
            "context": self.context,
            "recoverable": self.recoverable,
        }

    def __str__(self) -> str:
        """String representation with error code."""
        if self.error_code:
            return f"[{self.error_code.value}] {super().__str__()}"
        return super().__str__()


def _passthrough(kwargs: Dict[str, Any], *consumed: str) -> Dict[str, Any]:
    return {k: v for k, v in kwargs.items() if k not in consumed}


class ConfigurationError(CampusNewsError):
    """Configuration-related errors."""

    def __init__(self, message: str, config_key: Optional[str] = None, **kwargs):
        """Initialize configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error
            **kwargs: Additional arguments for CampusNewsError
        """
        context = kwargs.get("context", {})
        if config_key:
            context["config_key"] = config_key

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.CONFIG_INVALID),
            context=context,
            user_message=kwargs.get("user_message", f"Configuration error: {message}"),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class DatabaseError(CampusNewsError):
    """Database-related errors."""

    def __init__(self, message: str, query: Optional[str] = None, **kwargs):
        """Initialize database error.

        Args:
            message: Error message
            query: SQL query that caused the error
            **kwargs: Additional arguments for CampusNewsError
        """
        context = kwargs.get("context", {})
        if query:
            context["query"] = query

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_CONNECTION),
            context=context,
            user_message=kwargs.get("user_message", "Database operation failed"),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class DuplicateRecordError(DatabaseError):
    """A uniqueness constraint rejected the write."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.DATABASE_CONSTRAINT)
        super().__init__(message, **kwargs)


class FeedError(CampusNewsError):
    """Feed fetching and parsing errors."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        """Initialize feed error.

        Args:
            message: Error message
            feed_url: Feed URL that caused the error
            **kwargs: Additional arguments for CampusNewsError
        """
        context = kwargs.get("context", {})
        if feed_url:
            context["feed_url"] = feed_url

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.FEED_NETWORK_ERROR),
            context=context,
            user_message=kwargs.get(
                "user_message", f"Feed processing failed: {message}"
            ),
            recoverable=kwargs.get("recoverable", True),
            **_passthrough(
                kwargs, "context", "error_code", "user_message", "recoverable"
            ),
        )


class FeedFetchError(FeedError):
    """The feed could not be retrieved."""

    pass


class FeedParseError(FeedError):
    """The feed was retrieved but is not a parseable RSS/Atom document."""

    def __init__(self, message: str, feed_url: Optional[str] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.FEED_PARSE_ERROR)
        super().__init__(message, feed_url=feed_url, **kwargs)


class IngestionError(CampusNewsError):
    """Errors raised while ingesting a single news source."""

    def __init__(self, message: str, source_id: Optional[int] = None, **kwargs):
        """Initialize ingestion error.

        Args:
            message: Error message
            source_id: News source the run was processing
            **kwargs: Additional arguments for CampusNewsError
        """
        context = kwargs.get("context", {})
        if source_id is not None:
            context["source_id"] = source_id

        super().__init__(
            message=message,
            error_code=kwargs.get("error_code", ErrorCode.DATABASE_ERROR),
            context=context,
            user_message=kwargs.get("user_message", "News ingestion failed"),
            **_passthrough(kwargs, "context", "error_code", "user_message"),
        )


class RetentionSweepError(IngestionError):
    """Old news could not be purged; the source run is aborted before fetching."""

    def __init__(self, message: str, source_id: Optional[int] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.RETENTION_SWEEP_FAILED)
        super().__init__(message, source_id=source_id, **kwargs)


class ExistingLinkQueryError(IngestionError):
    """The dedup baseline could not be loaded."""

    def __init__(self, message: str, source_id: Optional[int] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.EXISTING_LINK_QUERY_FAILED)
        super().__init__(message, source_id=source_id, **kwargs)


class ImageRegistrationError(IngestionError):
    """An image reference could not be stored. The entry is kept without it."""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        context = kwargs.get("context", {})
        if url is not None:
            context["url"] = url
        kwargs["context"] = context
        kwargs.setdefault("error_code", ErrorCode.IMAGE_REGISTRATION_FAILED)
        kwargs.setdefault("recoverable", True)
        super().__init__(message, **kwargs)


class BatchPersistError(IngestionError):
    """The accumulated batch of news could not be written."""

    def __init__(
        self,
        message: str,
        source_id: Optional[int] = None,
        item_count: int = 0,
        **kwargs,
    ):
        context = kwargs.get("context", {})
        context["item_count"] = item_count
        kwargs["context"] = context
        kwargs.setdefault("error_code", ErrorCode.BATCH_PERSIST_FAILED)
        super().__init__(message, source_id=source_id, **kwargs)
        self.item_count = item_count


def get_user_friendly_message(exception: Exception) -> str:
    """Get user-friendly error message for any exception.

    Args:
        exception: Exception to get message for

    Returns:
        User-friendly error message
    """
    if isinstance(exception, CampusNewsError):
        return exception.user_message

    return "An unexpected error occurred. Please try again later."
