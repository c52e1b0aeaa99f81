"""
CampusNews Processing Module
============================

Per-source ingestion runs and the retention sweep that precedes them.
"""

from .news_pipeline import NewsIngestionEngine
from .retention import RetentionSweeper

__all__ = [
    "NewsIngestionEngine",
    "RetentionSweeper",
]
