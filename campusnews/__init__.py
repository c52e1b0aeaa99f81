"""
CampusNews - News Feed Ingestion
================================

Periodic ingestion of campus news feeds into a relational store.

Main Components:
- Database: SQLite with connection pooling and schema management
- Configuration: environment variables with Pydantic validation
- Ingestion: feed parsing, source transforms, dedup, image registration
- Processing: per-source ingestion runs with retention sweep
"""

__version__ = "1.0.0"
__author__ = "CampusNews Development Team"
__description__ = "News feed ingestion service"

from .config.settings import get_settings
from .database.connection import get_db_manager
from .database.schema import DatabaseSchema
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import CampusNewsError

__all__ = [
    "get_settings",
    "get_db_manager",
    "DatabaseSchema",
    "configure_application_logging",
    "get_logger_for_component",
    "CampusNewsError",
]
