"""Exception hierarchy for the Sketchy gallery service.

Every error raised by the core carries an HTTP status code so the API layer
can render it without inspecting the exception type.  The API renders any
:class:`SketchyError` as ``{"error": message, "details": details}``.
"""

from __future__ import annotations


class SketchyError(Exception):
    """Base class for all service errors.

    Attributes:
        message: Short, user-facing summary of the failure.
        details: Optional diagnostic detail (usually the triggering error's
            message).
    """

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class UpstreamError(SketchyError):
    """The text or image generation API failed."""


class StorageError(SketchyError):
    """An artifact or metadata backend operation failed."""


class ImageProcessingError(SketchyError):
    """Image bytes could not be decoded or re-encoded."""


class InvalidRequestError(SketchyError):
    """A required field is missing or malformed."""

    status_code = 400


class NotFoundError(SketchyError):
    """The referenced image does not exist."""

    status_code = 404


class AuthorizationError(SketchyError):
    """The admin credential is missing or wrong."""

    status_code = 401


class ConfigurationError(SketchyError):
    """Server-side configuration required by the request is missing."""
