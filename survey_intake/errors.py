"""
Error taxonomy for the survey intake backend.

Each exception carries the HTTP status and the short message that is safe
to return to callers. Route handlers raise them; the Flask error handlers
in survey_intake.app turn them into JSON responses.
"""

from __future__ import annotations


class SurveyIntakeError(Exception):
    """Base exception for all expected request failures."""

    status_code: int = 500
    message: str = "server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(SurveyIntakeError):
    """Missing or malformed request data."""

    status_code = 400
    message = "missing data"


class InvalidSurvey(ValidationError):
    """Survey type is not one of the recognised values."""

    message = "invalid survey"


class AuthorizationError(SurveyIntakeError):
    """Admin key absent or wrong."""

    status_code = 401
    message = "unauthorized"


class StorageError(SurveyIntakeError):
    """
    Any database failure.

    The public message never changes; the underlying sqlite error is only
    written to the application log.
    """

    status_code = 500
    message = "server error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__()
        self.detail = detail
