"""Error taxonomy for content store operations.

``ValidationError`` and ``NotFoundError`` abort an operation before anything
is written. ``WriteError`` is a hard failure while persisting. ``UploadError``
is never raised out of a store operation; it is collected into the result's
warnings so callers can tell a partial save from a failed one.
"""


class ContentError(Exception):
    """Base class for content store errors."""


class ValidationError(ContentError):
    """Raised when request input is invalid (e.g. missing title)."""


class NotFoundError(ContentError):
    """Raised when the addressed entry or project does not exist."""


class UploadError(ContentError):
    """An uploaded asset could not be stored."""


class WriteError(ContentError):
    """Raised when an index or HTML file could not be persisted."""


class CorruptIndexError(ContentError):
    """Raised when an index file exists but cannot be parsed."""
