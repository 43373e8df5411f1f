"""
Domain errors and their HTTP translation.

Services raise the ClubError family; the API layer turns them into
HTTPExceptions through BusinessError so messages stay safe for the operator.
Internal details (SQL errors, stack traces) are logged, never returned.
"""
from fastapi import HTTPException, status
import logging

logger = logging.getLogger(__name__)


class ClubError(Exception):
    """Base class for every error a workflow reports to the operator."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ClubError):
    """Bad input: non-positive amount, missing field, malformed value."""


class PreconditionError(ClubError):
    """Valid input, but the current state forbids the operation."""


class NotFoundError(PreconditionError):
    def __init__(self, resource: str, resource_id=None):
        detail = f"{resource} not found" if resource_id is None else f"{resource} {resource_id} not found"
        super().__init__(detail)
        self.resource = resource
        self.resource_id = resource_id


class PersistenceError(ClubError):
    """The store refused a write. Always surfaced as a generic failure."""


class BusinessError:
    """HTTP responses with safe (non-leaky) messages."""

    @staticmethod
    def not_found(resource: str = "Resource", reason: str = "") -> HTTPException:
        if reason:
            logger.info(f"Not found: {resource} - {reason}")
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )

    @staticmethod
    def unauthorized(reason: str = "") -> HTTPException:
        """
        Generic 401 for all authentication failures.

        Same response for wrong password and unknown user, so usernames
        cannot be enumerated from the login form.
        """
        logger.warning(f"Unauthorized access attempt: {reason}")
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        )

    @staticmethod
    def forbidden(reason: str = "") -> HTTPException:
        logger.warning(f"Forbidden access: {reason}")
        return HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )

    @staticmethod
    def bad_request(detail: str) -> HTTPException:
        """
        400 for input validation errors.

        OK to include specific details here since the operator caused the issue.
        Examples: "Opening amount must be greater than 0"
        """
        logger.info(f"Bad request: {detail}")
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )

    @staticmethod
    def conflict(detail: str) -> HTTPException:
        """
        409 when the current state blocks the operation.
        Examples: "No open cash register", "Insufficient stock"
        """
        logger.info(f"Conflict: {detail}")
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """Generic 500 - logs the actual error internally, hides it from the operator."""
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred")

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="The operation could not be completed. Please try again.",
        )

    @staticmethod
    def from_domain(error: ClubError) -> HTTPException:
        """Map a workflow error onto the matching HTTP response."""
        if isinstance(error, NotFoundError):
            return BusinessError.not_found(error.resource)
        if isinstance(error, ValidationError):
            return BusinessError.bad_request(error.message)
        if isinstance(error, PreconditionError):
            return BusinessError.conflict(error.message)
        return BusinessError.server_error(error.__cause__ or error)
