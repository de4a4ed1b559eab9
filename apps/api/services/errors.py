"""Error taxonomy shared by services and routers.

Every error maps onto one HTTP status class and is rendered with the failure
envelope by the handlers registered in ``services.api_response``.
"""

from typing import Any, List, Optional


class ApiError(Exception):
    """Base error carrying an HTTP status, a message and optional detail list."""

    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Any]] = None):
        self.message = message or self.default_message
        self.errors = list(errors or [])
        super().__init__(self.message)


class ValidationFailed(ApiError):
    status_code = 400
    default_message = "Invalid request input."


class Unauthorized(ApiError):
    status_code = 401
    default_message = "Unauthorized request."


class Forbidden(ApiError):
    status_code = 403
    default_message = "Access denied."


class NotFound(ApiError):
    status_code = 404
    default_message = "Resource not found."


class Conflict(ApiError):
    status_code = 409
    default_message = "Resource already exists."


class UploadFailed(ApiError):
    status_code = 500
    default_message = "Media upload failed."


class DeleteFailed(ApiError):
    status_code = 500
    default_message = "Media delete failed."


class TooManyRequests(ApiError):
    status_code = 429
    default_message = "Too many requests. Try again later."
