"""
Storage collaborators.

The core loads one Database snapshot per call and saves it back whole.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from peer_jury.models import Database

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the stored document cannot be read or written."""

    def __init__(self, message: str, path: str | Path | None = None, cause: Exception | None = None):
        self.path = str(path) if path is not None else None
        self.cause = cause
        super().__init__(message)


class Storage(Protocol):
    """All-or-nothing persistence of the whole database document."""

    def load(self) -> Database: ...

    def save(self, db: Database) -> None: ...


class MemoryStorage:
    """
    Keeps the document in memory.

    Snapshots are deep copies so that a failed call, which never saves,
    leaves the stored state untouched.
    """

    def __init__(self, db: Database | None = None):
        self._db = (db or Database()).model_copy(deep=True)

    def load(self) -> Database:
        return self._db.model_copy(deep=True)

    def save(self, db: Database) -> None:
        self._db = db.model_copy(deep=True)


class JsonFileStorage:
    """
    Stores the document as a single JSON file.

    Writes go to a temporary file in the same directory followed by an
    atomic rename, so readers never see a partial document.
    """

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Database:
        """
        Load the document, or an empty database if the file does not exist.

        Raises:
            StorageError: If the file exists but is not a valid document.
        """
        if not self._path.exists():
            logger.debug("No data file at %s, starting empty", self._path)
            return Database()

        try:
            raw = self._path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(f"Cannot read {self._path}: {e}", self._path, e) from e

        try:
            return Database.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt data file {self._path}", self._path, e) from e

    def save(self, db: Database) -> None:
        """
        Persist the document atomically.

        Raises:
            StorageError: If the file cannot be written.
        """
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = db.model_dump_json(indent=2)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self._path)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise StorageError(f"Cannot write {self._path}: {e}", self._path, e) from e
