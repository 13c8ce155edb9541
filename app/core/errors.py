"""Error types raised by the document service and rendered by the API."""
from typing import Optional
from fastapi import status


class DocumentServiceError(Exception):
    """Base class for failures that map onto an HTTP error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error = error if error is not None else message

    def to_dict(self) -> dict:
        return {"success": False, "message": self.message, "error": self.error}


class ValidationError(DocumentServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DocumentServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(DocumentServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidStateError(DocumentServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class UnexpectedError(DocumentServiceError):
    """Wraps any exception the handlers did not anticipate."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
