from __future__ import annotations


class StorageError(Exception):
    """Raised when a database operation fails for environmental reasons.

    The original exception is kept as ``__cause__`` (``raise ... from exc``).
    Callers must not assume the write went through.
    """


def format_user_friendly_error(error: Exception) -> str:
    """Short, safe message suitable for end users."""
    if isinstance(error, StorageError):
        return "Something went wrong while saving. Please try again."
    return "An unexpected error occurred. Please try again later."
