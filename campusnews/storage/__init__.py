"""
CampusNews Storage Layer
========================

Repository pattern implementations for data access abstraction.

This module provides:
- News repository with the per-source dedup baseline and batched inserts
- File repository for deduplicated media references
- Source repository for configured feeds
"""

from .news_repository import NewsRepository
from .file_repository import FileRepository
from .source_repository import SourceRepository

__all__ = [
    "NewsRepository",
    "FileRepository",
    "SourceRepository",
]
