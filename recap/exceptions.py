"""Exceptions raised by the activity pipeline."""


class RecapError(Exception):
    """Base class for pipeline errors."""


class InvalidInputError(RecapError, ValueError):
    """Raised when pipeline input is rejected before any network call."""


class ActivityFetchError(RecapError):
    """Raised when the primary fetch stage fails.

    The original exception is always chained as ``__cause__``.
    """
