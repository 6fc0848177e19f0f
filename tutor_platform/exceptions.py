"""
Typed errors raised by the service layer.

Each error carries the HTTP status code it maps to. The handlers registered in
main.py turn them into the standard response envelope, so services never build
responses themselves.
"""
from typing import List, Optional


class AppError(Exception):
    """Base class for errors that are safe to show to the client."""
    status_code = 500
    default_message = "Internal Server Error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[dict]] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(AppError):
    status_code = 400
    default_message = "Validation Error"


class Expired(AppError):
    status_code = 400
    default_message = "OTP has expired"


class InvalidCode(AppError):
    status_code = 400
    default_message = "Invalid OTP"


class Unauthorized(AppError):
    status_code = 401
    default_message = "Authentication failed"


class Forbidden(AppError):
    status_code = 403
    default_message = "You do not have permission to access this resource"


class NotFound(AppError):
    status_code = 404
    default_message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    default_message = "Resource already exists"


class PayloadTooLarge(AppError):
    status_code = 413
    default_message = "File size is too large"


class RateLimited(AppError):
    status_code = 429
    default_message = "Too many requests"


class TooManyAttempts(AppError):
    status_code = 429
    default_message = "Maximum verification attempts exceeded"


class UpstreamError(AppError):
    """A collaborator (media host, mail server) failed. The message is passed through."""
    status_code = 500
    default_message = "Upstream service failed"
