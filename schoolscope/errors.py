# schoolscope/errors.py

"""Exception types shared across the explorer components."""


class SchoolScopeError(Exception):
    """Base class for all schoolscope errors."""


class LoadError(SchoolScopeError):
    """The school dataset could not be fetched or parsed."""


class StorageError(SchoolScopeError):
    """A durable-store read or write failed (e.g. quota exceeded)."""


class ValidationError(SchoolScopeError, ValueError):
    """A filter range or metric value could not be interpreted."""
