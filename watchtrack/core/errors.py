"""Error taxonomy for watch-progress operations.

ValidationError and NotFoundError also subclass the matching builtin so
callers that only care about "bad value" or "missing key" can catch
ValueError / LookupError.  StorageError always chains the driver
exception that caused it.
"""

from __future__ import annotations


class WatchProgressError(Exception):
    pass


class ValidationError(WatchProgressError, ValueError):
    """Missing or malformed input, rejected before any storage access."""


class NotFoundError(WatchProgressError, LookupError):
    """Single-record lookup on a (user, media, media_type) that has no record."""


class StorageError(WatchProgressError):
    """The underlying store failed; the caller decides whether to retry."""
