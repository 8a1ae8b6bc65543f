"""Exception hierarchy for the vesting preview engine.

Parameter problems in the math itself are not raised here: the engine degrades
to zero at its documented guard points and leaves validation to callers.
"""


class VestingPreviewError(Exception):
    """Base class for all vesting preview errors."""


class ConfigurationError(VestingPreviewError):
    """Invalid or incomplete configuration. Raised at startup, not recoverable."""


class SourceUnavailableError(VestingPreviewError):
    """The data source failed and no servable cache entry exists."""

    def __init__(self, key: str, message: str):
        super().__init__(f"{key}: {message}")
        self.key = key


class ProjectionError(VestingPreviewError):
    """A timeline projection failed inside the worker."""


class ProjectionCancelled(ProjectionError):
    """A timeline projection was superseded by a newer request."""


class CacheBackendError(VestingPreviewError):
    """The durable cache backend could not be reached."""
