"""Report error taxonomy and FastAPI exception handlers.

Errors are rendered as RFC 7807 Problem Details.
"""

from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.core.logging import get_logger
from app.core.problem_details import (
    ERROR_TYPES,
    ProblemDetailResponse,
    problem_response,
)

logger = get_logger(__name__)


# =============================================================================
# Exception Classes
# =============================================================================


class ReportsError(Exception):
    """Base exception for report errors.

    Each subclass maps to an RFC 7807 problem type URI and an HTTP status.
    """

    error_type_uri: str = ERROR_TYPES["INTERNAL_ERROR"]

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize report error.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            status_code: HTTP status code.
            details: Additional error context.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    @property
    def title(self) -> str:
        """RFC 7807 title - short summary of problem type."""
        return self.code.replace("_", " ").title()


class InvalidFilterError(ReportsError):
    """Caller supplied malformed or contradictory filters.

    Raised before any query is built; the store is never contacted.
    """

    error_type_uri: str = ERROR_TYPES["INVALID_FILTER"]

    def __init__(
        self,
        message: str = "Invalid report filter",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="INVALID_FILTER",
            status_code=422,
            details=details,
        )


class QueryAssemblyError(ReportsError):
    """Generated SQL placeholders disagree with the bound parameters.

    Always a defect in the query builder, never caused by the caller.
    """

    error_type_uri: str = ERROR_TYPES["QUERY_ASSEMBLY_ERROR"]

    def __init__(
        self,
        message: str = "Query placeholders do not match parameters",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="QUERY_ASSEMBLY_ERROR",
            status_code=500,
            details=details,
        )


class ExecutionError(ReportsError):
    """The store rejected or failed to run a report query."""

    error_type_uri: str = ERROR_TYPES["EXECUTION_ERROR"]

    def __init__(
        self,
        message: str = "Report query execution failed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="EXECUTION_ERROR",
            status_code=502,
            details=details,
        )


class MalformedResultError(ReportsError):
    """A numeric result column held a value that does not parse as a number."""

    error_type_uri: str = ERROR_TYPES["MALFORMED_RESULT"]

    def __init__(
        self,
        message: str = "Report result is malformed",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            code="MALFORMED_RESULT",
            status_code=500,
            details=details,
        )


# =============================================================================
# Exception Handlers (RFC 7807)
# =============================================================================


async def reports_exception_handler(
    request: Request,
    exc: ReportsError,
) -> ProblemDetailResponse:
    """Handle ReportsError exceptions with RFC 7807 Problem Details.

    Client errors are logged as warnings; internal errors as errors with
    traceback.

    Args:
        request: FastAPI request object.
        exc: The raised exception.

    Returns:
        RFC 7807 Problem Detail response.
    """
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "app.error_handled",
        error=exc.message,
        error_type=type(exc).__name__,
        error_code=exc.code,
        status_code=exc.status_code,
        path=str(request.url.path),
        details=exc.details,
        exc_info=exc.status_code >= 500,
    )

    # Internal details (SQL text, raw values) stay in the logs.
    detail = exc.message if exc.status_code < 500 else exc.title
    errors = [exc.details] if exc.status_code < 500 and exc.details else None

    return problem_response(
        status=exc.status_code,
        title=exc.title,
        detail=detail,
        error_code=exc.code,
        errors=errors,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> ProblemDetailResponse:
    """Handle request validation errors with RFC 7807 Problem Details.

    Args:
        request: FastAPI request object.
        exc: Pydantic validation error.

    Returns:
        RFC 7807 Problem Detail response with field-level errors.
    """
    field_errors: list[dict[str, str]] = []
    for error in exc.errors():
        loc = error.get("loc", [])
        field_path = ".".join(str(part) for part in loc if part not in ("body", "query"))
        field_errors.append(
            {
                "field": field_path,
                "message": str(error.get("msg", "Validation failed")),
                "type": str(error.get("type", "unknown")),
            }
        )

    logger.warning(
        "app.validation_error",
        error_count=len(field_errors),
        path=str(request.url.path),
        fields=[e["field"] for e in field_errors],
    )

    return problem_response(
        status=422,
        title="Validation Error",
        detail=f"Request validation failed with {len(field_errors)} error(s).",
        error_code="VALIDATION_ERROR",
        errors=field_errors,
    )


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> ProblemDetailResponse:
    """Handle unexpected exceptions with RFC 7807 Problem Details."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=str(request.url.path),
        exc_info=True,
    )

    return problem_response(
        status=500,
        title="Internal Server Error",
        detail="An unexpected error occurred. Contact support with the request_id.",
        error_code="INTERNAL_ERROR",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.add_exception_handler(ReportsError, reports_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_exception_handler)
