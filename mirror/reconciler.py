"""
Sync reconciliation engine for the artifact mirror.

For every tag in a repository's catalog the reconciler decides whether the
local copy is missing (CREATE), strictly older than the remote tag (REPLACE)
or current (SKIP), and applies the decision to the local artifact store:

    REPLACE: remove old tree -> create directory -> pull -> set freshness
    CREATE:                     create directory -> pull -> set freshness
    SKIP:    nothing

The freshness marker is the remote tag's last_modified, never the local pull
time, so a pass over an unchanged catalog performs no writes.

Failure policy per repository:
    - catalog fetch error: abort this repository
    - removal error: skip the tag
    - create or pull error: abort the remaining tags of this repository
    - freshness write error: log only
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .catalog import Tag
from .config import Config, Repository
from .errors import MirrorError, PullError, ValidationError
from .fetcher import artifact_reference
from .store import UNSYNCED_TIMESTAMP, ArtifactStore, MtimeFreshnessStore

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    SKIP = "skip"
    CREATE = "create"
    REPLACE = "replace"


def decide_outcome(tag: Tag, recorded) -> Outcome:
    """
    Compare a remote tag with the recorded freshness of its local copy.

    Args:
        tag: Remote tag
        recorded: Recorded freshness datetime, or None when there is no local copy

    Returns:
        CREATE if there is no local copy, REPLACE if the local copy is
        unsynced or strictly older than the tag, SKIP otherwise (never
        downgrade)
    """
    if recorded is None:
        return Outcome.CREATE
    if recorded <= UNSYNCED_TIMESTAMP:
        return Outcome.REPLACE
    if tag.last_modified > recorded:
        return Outcome.REPLACE
    return Outcome.SKIP


@dataclass
class SyncReport:
    """Summary of one repository's reconciliation pass."""

    repository: str
    created: list = field(default_factory=list)
    replaced: list = field(default_factory=list)
    skipped: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def changed(self) -> int:
        return len(self.created) + len(self.replaced)

    def __str__(self):
        return (
            f"{self.repository}: {len(self.created)} created, {len(self.replaced)} replaced, "
            f"{len(self.skipped)} up to date, {len(self.failed)} failed"
        )


class Reconciler:
    """
    Mirrors the tags of configured repositories into the local store.

    Args:
        config: Mirror configuration
        catalog: Object with fetch_tags(repository) -> list[Tag]
        fetcher: ArtifactFetcher used to transfer tag content
        store: ArtifactStore; defaults to one rooted at config.FILES_DIR
        freshness: FreshnessStore; defaults to directory mtime
    """

    def __init__(self, config: Config, catalog, fetcher, store=None, freshness=None):
        self.config = config
        self.catalog = catalog
        self.fetcher = fetcher
        self.store = store or ArtifactStore(config.FILES_DIR)
        self.freshness = freshness or MtimeFreshnessStore()

    def reconcile(self, repository: Repository) -> SyncReport:
        """
        Run one reconciliation pass for a single repository.

        Raises:
            CatalogError: if the tag catalog cannot be fetched
            StoreError: if a tag directory cannot be created
            PullError: if the pull tool fails; remaining tags are not processed
        """
        report = SyncReport(repository=repository.name)
        base = self.store.repository_dir(repository)
        logger.info(f"Reconciling {repository.name} into {base}")

        tags = self.catalog.fetch_tags(repository)

        for tag in tags:
            reference = artifact_reference(self.config.REGISTRY_HOST, repository, tag.name)
            try:
                output_path = self.store.tag_path(repository, tag.name)
            except ValidationError as e:
                logger.error(f"Skipping {reference}: {e}")
                report.failed.append(tag.name)
                continue

            recorded = self.freshness.get_recorded_freshness(output_path)
            outcome = decide_outcome(tag, recorded)

            if outcome is Outcome.SKIP:
                logger.debug(f"{reference} is up to date (recorded {recorded})")
                report.skipped.append(tag.name)
                continue

            if outcome is Outcome.REPLACE:
                logger.info(
                    f"Got newer content for {reference} "
                    f"(tag last modified: {tag.raw_last_modified}, recorded: {recorded})"
                )
                try:
                    self.store.remove(output_path)
                except OSError as e:
                    logger.error(f"Failed to remove the directory {output_path}: {e}")
                    report.failed.append(tag.name)
                    continue

            self._sync_tag(reference, tag, output_path)

            if outcome is Outcome.REPLACE:
                report.replaced.append(tag.name)
            else:
                report.created.append(tag.name)

        logger.info(f"Reconciled {report}")
        return report

    def _sync_tag(self, reference: str, tag: Tag, output_path) -> None:
        self.store.create(output_path)
        self._mark(output_path, UNSYNCED_TIMESTAMP)

        try:
            self.fetcher.pull(reference, str(output_path))
        except Exception:
            # Partial output bumps the directory mtime; keep the record stale
            self._mark(output_path, UNSYNCED_TIMESTAMP)
            raise

        if tag.has_timestamp:
            self._mark(output_path, tag.last_modified)
        else:
            logger.warning(
                f"{reference} has no usable last_modified, recording pull time as its freshness"
            )
            self._mark(output_path, datetime.now(timezone.utc))

    def _mark(self, path, timestamp: datetime) -> None:
        try:
            self.freshness.set_recorded_freshness(path, timestamp)
        except OSError as e:
            logger.error(f"Failed to change the mod time for the directory {path}: {e}")

    def reconcile_all(self, repositories=None) -> dict:
        """
        Reconcile every repository sequentially.

        One repository's failure never prevents the others from being
        reconciled.

        Args:
            repositories: Repositories to reconcile; defaults to config.REPOSITORIES

        Returns:
            Mapping of repository name to the error that aborted its pass
        """
        if repositories is None:
            repositories = self.config.REPOSITORIES

        errors = {}
        for repository in repositories:
            try:
                self.reconcile(repository)
            except PullError as e:
                if e.retryable:
                    logger.warning(f"Sync of {repository.name} interrupted, retrying next pass: {e}")
                else:
                    logger.error(f"Sync of {repository.name} failed: {e}")
                errors[repository.name] = e
            except MirrorError as e:
                logger.error(f"Sync of {repository.name} failed: {e}")
                errors[repository.name] = e
            except Exception as e:
                logger.exception(f"Unexpected error while syncing {repository.name}")
                errors[repository.name] = e
        return errors
