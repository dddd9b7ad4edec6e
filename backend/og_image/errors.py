"""
OG Image Errors

Exception taxonomy for the screenshot service.

Only AdmissionDenied and RenderError are allowed to shape an HTTP response.
StorageError is always absorbed by the cache layer. Running out of cache
capacity is not an error at all: the capacity check returns a boolean.
"""


class OgImageError(Exception):
    """Base class for all service errors."""


class StorageError(OgImageError):
    """Durable cache tier I/O failure (exists, read, write, list, delete)."""

    def __init__(self, operation: str, key: str = "", cause: Exception = None):
        self.operation = operation
        self.key = key
        self.cause = cause
        target = f" key={key}" if key else ""
        super().__init__(f"{operation} failed{target}: {cause}")


class RenderError(OgImageError):
    """The renderer could not produce an image (timeout, navigation, crash)."""


class AdmissionDenied(OgImageError):
    """Too many renders are already in flight."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Render concurrency limit of {limit} reached")


class InvalidTargetError(OgImageError):
    """The requested URL failed validation."""
