"""
Local artifact store for the artifact mirror.

Layout on disk:

    <root>/<repository.local_dir>/<tag name>/...

The tag directory's modification time is the freshness marker: it is set to
the remote tag's last_modified after a successful pull. Access to the marker
goes through FreshnessStore so it can be replaced by a manifest file without
touching the reconciler.
"""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path

from .config import Repository
from .errors import StoreError
from .validation import validate_tag

logger = logging.getLogger(__name__)

# Freshness of a record whose pull has not completed
UNSYNCED_TIMESTAMP = datetime.fromtimestamp(0, tz=timezone.utc)


class FreshnessStore(ABC):
    """Records how fresh the content of a local tag directory is."""

    @abstractmethod
    def get_recorded_freshness(self, path: Path):
        """Return the recorded timestamp for path, or None if absent."""

    @abstractmethod
    def set_recorded_freshness(self, path: Path, timestamp: datetime) -> None:
        """Record timestamp as the freshness of path."""


class MtimeFreshnessStore(FreshnessStore):
    """Freshness marker kept in the directory modification time."""

    def get_recorded_freshness(self, path: Path):
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        return datetime.fromtimestamp(st.st_mtime_ns / 1e9, tz=timezone.utc)

    def set_recorded_freshness(self, path: Path, timestamp: datetime) -> None:
        # Whole seconds survive the round trip through st_mtime exactly
        ns = int(timestamp.timestamp()) * 1_000_000_000
        os.utime(path, ns=(ns, ns))


class ArtifactStore:
    """
    Filesystem subtree holding one directory per repository and one
    subdirectory per synced tag.
    """

    def __init__(self, root):
        self.root = Path(root).resolve()

    def repository_dir(self, repository: Repository) -> Path:
        return self.root / repository.local_dir

    def tag_path(self, repository: Repository, tag_name: str) -> Path:
        """
        Path of a tag's directory.

        Raises:
            ValidationError: if tag_name is not a safe directory name
        """
        validate_tag(tag_name)
        return self.repository_dir(repository) / tag_name

    def remove(self, path: Path) -> None:
        """Remove a tag directory tree. OSError propagates."""
        logger.debug(f"Removing {path}")
        shutil.rmtree(path)

    def create(self, path: Path) -> None:
        """
        Create a tag directory (and parents) readable by the owner only.

        Raises:
            StoreError: if the directory cannot be created
        """
        logger.debug(f"Creating {path}")
        try:
            path.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            raise StoreError(f"Cannot create directory {path}: {e}")
