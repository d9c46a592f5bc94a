"""
Exceptions raised by the gateway and rendered as JSON error responses.

Each exception carries the HTTP status and the client-facing message, so the
exception handlers in main.py stay a single mapping.
"""

from fastapi import status


class GatewayError(Exception):
    """Base class for errors that map directly to an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        if message is not None:
            self.message = message
        self.detail = detail
        super().__init__(self.message)


class MissingTokenError(GatewayError):
    """Raised when no bearer token is presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Access token required"


class InvalidTokenError(GatewayError):
    """Raised when the bearer token does not match the configured secret."""

    status_code = status.HTTP_403_FORBIDDEN
    message = "Invalid token"


class UploadError(GatewayError):
    """Raised by the upload layer for client-correctable upload problems."""

    status_code = status.HTTP_400_BAD_REQUEST


class MissingFileError(UploadError):
    message = "PDF file is required"


class UnsupportedFileTypeError(UploadError):
    message = "Only PDF files are allowed"


class FileTooLargeError(UploadError):
    message = "File too large. Maximum size is 10MB."


class TooManyFilesError(UploadError):
    message = "Too many files. Maximum number of files is 1."


class MalformedUploadError(UploadError):
    message = "Invalid multipart request"


class ExtractionRejectedError(GatewayError):
    """Raised when the PDF does not yield usable ISDOC data."""

    status_code = 422


class ProcessingError(GatewayError):
    """Raised for unexpected failures while processing an upload."""

    message = "Internal server error"
