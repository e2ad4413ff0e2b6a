"""
Tag catalog client for the artifact mirror.

Fetches the list of tags of one remote repository from the registry API:

    GET https://<registry-host>/api/v1/repository/<org>/<repo>/tag/

    {"tags": [{"name": "v1", "last_modified": "Mon, 02 Jan 2006 15:04:05 -0700"}, ...]}
"""

import logging
from dataclasses import dataclass
from datetime import datetime

import requests

from .config import Repository
from .errors import CatalogError
from .validation import MIN_TIMESTAMP, parse_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tag:
    """
    One version of a repository's artifact as reported by the registry.

    Attributes:
        name: Tag name, unique within a repository at a given instant
        last_modified: When the tag was last pushed; MIN_TIMESTAMP if unparsable
        raw_last_modified: Timestamp text as received
    """

    name: str
    last_modified: datetime
    raw_last_modified: str = ""

    @property
    def has_timestamp(self) -> bool:
        return self.last_modified != MIN_TIMESTAMP


def tag_from_entry(entry: dict, repository_name: str = "") -> Tag:
    """
    Build a Tag from one entry of the catalog response.

    A timestamp that fails to parse is logged and replaced by MIN_TIMESTAMP,
    so the tag is never considered newer than existing local content.

    Raises:
        CatalogError: if the entry has no usable name
    """
    if not isinstance(entry, dict) or not isinstance(entry.get("name"), str) or not entry["name"]:
        raise CatalogError(f"Malformed tag entry in {repository_name}: {entry!r}")

    raw = entry.get("last_modified", "")
    try:
        last_modified = parse_timestamp(raw)
    except ValueError as e:
        logger.warning(
            f"Cannot parse last_modified {raw!r} of {repository_name}:{entry['name']}: {e}; "
            f"treating it as oldest possible"
        )
        last_modified = MIN_TIMESTAMP
    return Tag(
        name=entry["name"],
        last_modified=last_modified,
        raw_last_modified=raw if isinstance(raw, str) else "",
    )


class CatalogClient:
    """HTTP client for the registry tag listing API."""

    def __init__(self, registry_host: str, timeout: int = 30, session=None):
        self.registry_host = registry_host
        self.timeout = timeout
        self.session = session or requests.Session()

    def tags_url(self, repository: Repository) -> str:
        return f"https://{self.registry_host}/api/v1/repository/{repository.name}/tag/"

    def fetch_tags(self, repository: Repository) -> list:
        """
        Fetch the tags currently known to the registry for a repository.

        Args:
            repository: Repository to list

        Returns:
            List of Tag in registry response order

        Raises:
            CatalogError: on transport error, non-200 status, malformed body
                or an empty tag list
        """
        url = self.tags_url(repository)
        logger.info(f"Fetching tag catalog from: {url}")

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise CatalogError(f"Request to {url} failed: {e}")

        if response.status_code != 200:
            raise CatalogError(f"Got unexpected status from {url}: {response.status_code}")

        try:
            body = response.json()
        except ValueError as e:
            raise CatalogError(f"Failed to decode response from {url}: {e}")

        entries = body.get("tags") if isinstance(body, dict) else None
        if not isinstance(entries, list):
            raise CatalogError(f"Response from {url} has no tag list")
        if not entries:
            raise CatalogError(f"Repository {repository.name} has no tags ({url})")

        tags = []
        for entry in entries:
            try:
                tags.append(tag_from_entry(entry, repository.name))
            except CatalogError as e:
                logger.warning(f"Skipping tag entry: {e}")
        if not tags:
            raise CatalogError(f"Repository {repository.name} has no usable tags ({url})")

        logger.debug(f"Catalog for {repository.name}: {len(tags)} tags")
        return tags
