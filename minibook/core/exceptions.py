from typing import Optional

from fastapi import status


class AppException(Exception):
    """Base class for errors that map onto a JSON error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal server error"

    def __init__(self, error: Optional[str] = None, message: Optional[str] = None):
        self.error = error or self.error
        self.message = message
        super().__init__(self.error)

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation error"


class EmptyPostError(ValidationError):
    error = "Post must have content or media"


class EmptyContentError(ValidationError):
    error = "Content is required"


class UnsupportedMediaTypeError(ValidationError):
    error = "Only image and video files are allowed"


class MediaTooLargeError(ValidationError):
    error = "File is too large"


class ConflictError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Resource already exists"


class InvalidCredentialsError(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Invalid credentials"


class MissingTokenError(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error = "Access token required"


class InvalidTokenError(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Invalid token"


class TokenExpiredError(InvalidTokenError):
    error = "Token expired"


class ForbiddenError(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error = "Not authorized"


class NotFoundError(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Resource not found"


class ServerError(AppException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"
