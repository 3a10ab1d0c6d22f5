"""Global exception handlers for standardized error responses.

Implements RFC 7807 Problem Details for HTTP APIs. Signing errors are
per-request: they are answered with a problem response and the server keeps
serving other requests.
"""

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from scepserver.core.logging import logger
from scepserver.domain.errors import (
    CAUnavailable,
    InvalidRequest,
    ScepError,
    SigningError,
    VerifierExecutionFailed,
)
from scepserver.models.errors import ProblemDetail, ValidationErrorDetail

PROBLEM_MEDIA_TYPE = "application/problem+json"


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type=PROBLEM_MEDIA_TYPE,
    )


def scep_error_status(exc: ScepError) -> tuple[int, str]:
    """Map a server error to an HTTP status and problem title."""
    if isinstance(exc, InvalidRequest):
        return 400, "Invalid request"
    if isinstance(exc, VerifierExecutionFailed):
        return 502, "CSR verification unavailable"
    if isinstance(exc, SigningError):
        return 403, "Signing refused"
    if isinstance(exc, CAUnavailable):
        return 503, "CA unavailable"
    return 500, "Internal Server Error"


async def scep_error_handler(request: Request, exc: ScepError) -> JSONResponse:
    """Handle server errors raised while serving a request.

    Args:
        request: The FastAPI request object.
        exc: The ScepError that was raised.

    Returns:
        JSONResponse with ProblemDetail body.
    """
    status, title = scep_error_status(exc)
    logger.bind(path=str(request.url.path), status_code=status).warning(
        f"{type(exc).__name__}: {exc}"
    )
    return _problem_response(
        ProblemDetail(
            title=title,
            status=status,
            detail=str(exc),
            instance=str(request.url.path),
            error=type(exc).__name__,
        )
    )


async def http_exception_handler(
    request: Request, exc: HTTPException
) -> JSONResponse:  # noqa: ASYNC100
    """Handle HTTPException with RFC 7807 ProblemDetail response."""
    logger.error(f"HTTPException: {exc.status_code} - {exc.detail}")
    return _problem_response(
        ProblemDetail(
            title="An error occurred",
            status=exc.status_code,
            detail=str(exc.detail),
            instance=str(request.url.path),
        )
    )


async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:  # noqa: ASYNC100
    """Handle unexpected exceptions with 500 Internal Server Error."""
    logger.exception(f"Unexpected error: {type(exc).__name__}")
    return _problem_response(
        ProblemDetail(
            title="Internal Server Error",
            status=500,
            detail="An unexpected error occurred. Please try again later.",
            instance=str(request.url.path),
        )
    )


async def validation_exception_handler(  # noqa: ASYNC100
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request parameter validation errors."""
    logger.warning(f"Validation error: {len(exc.errors())} errors")

    errors = [
        ValidationErrorDetail(
            type=error["type"],
            loc=tuple(str(loc) for loc in error["loc"]),
            msg=error["msg"],
            input=error.get("input"),
        )
        for error in exc.errors()
    ]

    return _problem_response(
        ProblemDetail(
            title="Validation Error",
            status=422,
            detail=f"One or more validation errors occurred ({len(errors)} errors).",
            instance=str(request.url.path),
            errors=errors,
        )
    )
