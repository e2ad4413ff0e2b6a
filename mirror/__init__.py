"""
Container registry artifact mirror with a browsable HTTP listing.

Periodically mirrors the tags of one or more registry repositories to local
disk with `oras pull`, and serves the mirrored tree over HTTP.

Features:
    - Freshness tracked per tag via the tag directory's modification time
    - Only missing or strictly newer tags are pulled; never downgrades
    - Stale tags are removed and pulled again
    - One repository's failure never blocks the others
    - Directory listing UI with transparent, size-bounded .gz decompression
    - Configurable via environment variables

Store Layout:
    <FILES_DIR>/<repository>/<tag>/...
    Example: QUAY_ORG_REPOS=org/reports -> files/reports/v1/...

See README.md for full documentation.
"""

__version__ = "0.1.0"

from .config import Config, Repository
from .errors import (
    MirrorError,
    ConfigError,
    CatalogError,
    ValidationError,
    StoreError,
    PullError,
)
from .catalog import CatalogClient, Tag
from .store import ArtifactStore, FreshnessStore, MtimeFreshnessStore
from .fetcher import ArtifactFetcher, OrasFetcher, artifact_reference
from .reconciler import Outcome, Reconciler, SyncReport, decide_outcome
from .scheduler import SyncScheduler
from .routes import create_app

__all__ = [
    "Config",
    "Repository",
    "MirrorError",
    "ConfigError",
    "CatalogError",
    "ValidationError",
    "StoreError",
    "PullError",
    "CatalogClient",
    "Tag",
    "ArtifactStore",
    "FreshnessStore",
    "MtimeFreshnessStore",
    "ArtifactFetcher",
    "OrasFetcher",
    "artifact_reference",
    "Outcome",
    "Reconciler",
    "SyncReport",
    "decide_outcome",
    "SyncScheduler",
    "create_app",
]
