"""
File Repository
===============

Data access for StoredFile rows. Names are unique, so a lookup by name is
the dedup check for media references; the storage path is
not part of that lookup.
"""

import sqlite3
from typing import List, Optional

from ..database.connection import DatabaseConnection
from ..database.models import StoredFile
from ..utils.logging import get_logger_for_component
from ..utils.exceptions import DatabaseError, DuplicateRecordError, ErrorCode


class FileRepository:
    """Repository for StoredFile lookups and creation."""

    def __init__(self, db_connection: DatabaseConnection):
        """Initialize file repository.

        Args:
            db_connection: Database connection manager
        """
        self.db = db_connection
        self.logger = get_logger_for_component("file_repository")

    def get_by_name(self, name: str) -> Optional[StoredFile]:
        """Find a file by its deterministic name, regardless of path.

        Args:
            name: File name to look up

        Returns:
            StoredFile or None if no row has that name

        Raises:
            DatabaseError: If the query fails
        """
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM files WHERE name = ?", (name,)
                ).fetchone()
        except sqlite3.Error as e:
            self.logger.error(f"Couldn't query database for file {name}: {e}")
            raise DatabaseError(
                f"Failed to look up file {name}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return StoredFile(**dict(row)) if row else None

    def get_file(self, file_id: int) -> Optional[StoredFile]:
        """Get file by ID."""
        try:
            with self.db.get_connection() as conn:
                row = conn.execute(
                    "SELECT * FROM files WHERE id = ?", (file_id,)
                ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to get file {file_id}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return StoredFile(**dict(row)) if row else None

    def create_file(self, stored_file: StoredFile) -> StoredFile:
        """Insert a new file row.

        Args:
            stored_file: File to create (``id`` is ignored)

        Returns:
            The stored file with its database ID

        Raises:
            DuplicateRecordError: If another row already holds the name
            DatabaseError: If the insert fails for any other reason
        """
        try:
            with self.db.get_connection() as conn:
                cursor = conn.execute(
                    """
                    INSERT INTO files (name, path, url, downloaded)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        stored_file.name,
                        stored_file.path,
                        stored_file.url,
                        stored_file.downloaded,
                    ),
                )
                conn.commit()
                file_id = cursor.lastrowid
        except sqlite3.IntegrityError as e:
            raise DuplicateRecordError(
                f"File {stored_file.name} already exists: {e}",
                context={"name": stored_file.name},
            ) from e
        except sqlite3.Error as e:
            self.logger.error(f"Could not store new file {stored_file.name}: {e}")
            raise DatabaseError(
                f"Failed to create file {stored_file.name}: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        self.logger.debug(f"Created file {file_id}: {stored_file.name}")
        return stored_file.model_copy(update={"id": file_id})

    def get_pending_downloads(self, limit: int = 100) -> List[StoredFile]:
        """Files registered but not yet fetched by the download worker.

        Args:
            limit: Maximum number of files to return

        Returns:
            Oldest pending files first
        """
        try:
            with self.db.get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT * FROM files
                    WHERE downloaded = 0 AND url IS NOT NULL
                    ORDER BY id
                    LIMIT ?
                    """,
                    (limit,),
                ).fetchall()
        except sqlite3.Error as e:
            raise DatabaseError(
                f"Failed to list pending downloads: {e}",
                error_code=ErrorCode.DATABASE_ERROR,
            ) from e

        return [StoredFile(**dict(row)) for row in rows]

    def count_files(self) -> int:
        """Get total number of files."""
        with self.db.get_connection() as conn:
            result = conn.execute("SELECT COUNT(*) FROM files").fetchone()
            return result[0] if result else 0
