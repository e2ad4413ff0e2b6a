"""
Container registry artifact mirror with a browsable HTTP listing.

Mirrors every tag of the configured repositories into FILES_DIR using
`oras pull`, re-syncs on a fixed interval, and serves the tree over HTTP.

Architecture:
    1. Configuration is read from the environment once at startup
    2. A background scheduler runs a sync pass immediately, then every interval
    3. Each pass fetches the tag catalog of every repository from the registry
    4. Missing tags are pulled; tags newer than the local copy are replaced
    5. The Flask app serves directory listings and file content from FILES_DIR

Endpoints:
    - GET / and GET /<path> - Directory listing or file content
    - GET /healthz - Liveness check

Environment Variables:
    QUAY_ORG_REPOS, SYNC_INTERVAL_MINUTES, PORT, HOST, FILES_DIR,
    REGISTRY_HOST, ORAS_BIN, PULL_TIMEOUT, CATALOG_TIMEOUT,
    MAX_DECOMPRESSED_SIZE, LOG_LEVEL

Example:
    $ QUAY_ORG_REPOS=org/reports PORT=8080 python app.py
"""

import logging
import sys

from mirror.catalog import CatalogClient
from mirror.config import Config
from mirror.errors import ConfigError
from mirror.fetcher import OrasFetcher
from mirror.reconciler import Reconciler
from mirror.routes import create_app
from mirror.scheduler import SyncScheduler

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    """Configure root logging in the service format. Unknown levels fall back to INFO."""
    known = isinstance(logging.getLevelName(level), int)
    logging.basicConfig(
        level=level if known else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if not known:
        logger.warning(f"Unknown LOG_LEVEL {level!r}, using INFO")


def main():
    """Main entry point for the mirror application."""
    try:
        config = Config.from_env()
    except ConfigError as e:
        configure_logging("INFO")
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    configure_logging(config.LOG_LEVEL)
    logger.info(f"Configuration: {config}")
    logger.info(f"Log level: {logging.getLevelName(logger.getEffectiveLevel())}")

    reconciler = Reconciler(
        config,
        catalog=CatalogClient(config.REGISTRY_HOST, timeout=config.CATALOG_TIMEOUT),
        fetcher=OrasFetcher(config.ORAS_BIN, timeout=config.PULL_TIMEOUT),
    )
    scheduler = SyncScheduler(reconciler, config.SYNC_INTERVAL_MINUTES)
    scheduler.start()

    app = create_app(config)
    logger.info(f"Serving files from {config.FILES_DIR} on {config.HOST}:{config.PORT}")
    try:
        # Reloader would start a second scheduler
        app.run(host=config.HOST, port=config.PORT, threaded=True, use_reloader=False)
    finally:
        scheduler.stop(timeout=5)


if __name__ == "__main__":
    main()
