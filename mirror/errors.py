"""
Exception types for the artifact mirror.

Only ConfigError is fatal (at startup). Everything else raised in the sync
path is caught per repository by the reconciler and retried on the next tick.
"""


class MirrorError(Exception):
    """Base class for all artifact mirror errors."""


class ConfigError(MirrorError):
    """A required setting is missing or unusable."""


class CatalogError(MirrorError):
    """The tag catalog could not be fetched or decoded."""


class ValidationError(MirrorError):
    """A repository name, tag name or request path is unsafe."""


class StoreError(MirrorError):
    """The local artifact store could not be modified."""


class PullError(MirrorError):
    """The external pull tool failed."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable
