"""
Typed errors raised by the planning core.

Each carries the HTTP status the API layer should answer with; the handler
registered in main.py turns them into JSON responses.
"""

from fastapi import status


class StudyPlanError(Exception):
    """Base exception for the planning core."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None):
        self.message = message
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(StudyPlanError):
    """
    Input rejected before any mutation.

    Examples:
    - Goal without a title
    - Missing or past deadline for an exam plan
    - Non-positive hours per day
    """

    status_code = 422


class PersistenceError(StudyPlanError):
    """A record store operation failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class GenerationUnavailable(StudyPlanError):
    """
    Text generation failed, timed out, or returned nothing usable.

    Always recovered locally by the caller; never reaches the API.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class InvalidTransition(StudyPlanError):
    """Task status change not permitted from the task's current status."""

    status_code = status.HTTP_409_CONFLICT


class NotFound(StudyPlanError):
    """User-scoped row does not exist."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message)
