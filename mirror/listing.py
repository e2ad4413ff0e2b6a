"""
Directory listing and file content helpers for the static server.

Provides entry listing with sort order, content type inference, and
bounded transparent decompression of .gz files.
"""

import gzip
import logging
import os
import zlib
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import quote

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/plain; charset=utf-8"

CONTENT_TYPES = {
    ".html": "text/html; charset=utf-8",
    ".htm": "text/html; charset=utf-8",
    ".css": "text/css; charset=utf-8",
    ".js": "application/javascript",
    ".json": "application/json",
    ".xml": "text/xml; charset=utf-8",
    ".junit": "text/xml; charset=utf-8",
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".pdf": "application/pdf",
    ".zip": "application/octet-stream",
    ".tar": "application/octet-stream",
    ".tgz": "application/octet-stream",
}

_READ_CHUNK = 64 * 1024


class DecompressedTooLarge(Exception):
    """Decompressed content exceeds the configured limit."""

    def __init__(self, limit: int):
        super().__init__(f"Decompressed file too large (max {limit // (1024 * 1024)}MB)")
        self.limit = limit


@dataclass
class FileEntry:
    """One entry of a directory listing."""

    name: str
    path: str
    is_dir: bool
    size: int
    mod_time: datetime


def list_directory(fs_path: str, url_path: str) -> list:
    """
    List a directory for rendering.

    Args:
        fs_path: Directory on disk
        url_path: URL path of that directory, used to build entry links

    Returns:
        Sorted list of FileEntry (see sort_entries)

    Raises:
        OSError: if the directory cannot be read
    """
    entries = []
    base_url = "/" + url_path.strip("/")
    with os.scandir(fs_path) as it:
        for dir_entry in it:
            try:
                st = dir_entry.stat()
                is_dir = dir_entry.is_dir()
            except OSError as e:
                # Entry vanished mid-listing (e.g. a tag being replaced)
                logger.debug(f"Cannot stat {dir_entry.path}: {e}")
                continue
            entries.append(
                FileEntry(
                    name=dir_entry.name,
                    path=quote(os.path.join(base_url, dir_entry.name)),
                    is_dir=is_dir,
                    size=st.st_size,
                    mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
                )
            )
    return sort_entries(entries)


def sort_entries(entries: list) -> list:
    """
    Directories first, newest first; then files by name.
    """
    dirs = sorted((e for e in entries if e.is_dir), key=lambda e: e.mod_time, reverse=True)
    files = sorted((e for e in entries if not e.is_dir), key=lambda e: e.name)
    return dirs + files


def parent_path(url_path: str):
    """URL of the parent directory, or None at the root."""
    stripped = url_path.strip("/")
    if not stripped:
        return None
    return quote("/" + os.path.dirname(stripped))


def content_type_for(name: str) -> str:
    ext = os.path.splitext(name)[1].lower()
    return CONTENT_TYPES.get(ext, DEFAULT_CONTENT_TYPE)


def read_decompressed(fs_path: str, limit: int) -> bytes:
    """
    Read a gzip file, bounding the decompressed size.

    Raises:
        DecompressedTooLarge: if content exceeds limit bytes
        OSError: if the file cannot be read or is not valid gzip
    """
    chunks = []
    total = 0
    try:
        with gzip.open(fs_path, "rb") as f:
            while True:
                chunk = f.read(min(_READ_CHUNK, limit + 1 - total))
                if not chunk:
                    break
                total += len(chunk)
                if total > limit:
                    logger.warning(f"Decompressed size of {fs_path} exceeds {limit} bytes")
                    raise DecompressedTooLarge(limit)
                chunks.append(chunk)
    except (EOFError, zlib.error) as e:
        raise OSError(f"Unable to decompress {fs_path}: {e}")
    return b"".join(chunks)


def read_file_content(fs_path: str, max_decompressed_size: int) -> tuple:
    """
    Read a file for serving.

    .gz files are decompressed and typed by their inner name
    (report.xml.gz -> text/xml).

    Returns:
        Tuple of (content bytes, content type)
    """
    name = os.path.basename(fs_path)
    if name.lower().endswith(".gz"):
        content = read_decompressed(fs_path, max_decompressed_size)
        return content, content_type_for(name[:-3])

    with open(fs_path, "rb") as f:
        content = f.read()
    return content, content_type_for(name)
