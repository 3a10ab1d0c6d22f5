"""Error response models following RFC 7807 Problem Details."""

from typing import Any

from pydantic import BaseModel, Field, model_validator

RFC7231_BASE_URL = "https://datatracker.ietf.org/doc/html/rfc7231#section-"

# Status codes the server answers with, mapped to their RFC section
status_to_section: dict[int, str] = {
    400: "6.5.1",
    403: "6.5.3",
    404: "6.5.4",
    405: "6.5.5",
    422: "https://datatracker.ietf.org/doc/html/rfc4918#section-11.2",
    500: "6.6.1",
    502: "6.6.3",
    503: "6.6.4",
}


def get_rfc_section_url(status: int) -> str:
    """Get the RFC section URL for a given HTTP status code.

    Unknown status codes point to the 500 section.
    """
    section = status_to_section.get(status, status_to_section[500])
    if section.startswith("https://"):
        return section
    return f"{RFC7231_BASE_URL}{section}"


class ValidationErrorDetail(BaseModel):
    """Validation error detail for a single request parameter."""

    type: str = Field(..., description="Error type")
    loc: tuple[str, ...] = Field(..., description="Error location in request")
    msg: str = Field(..., description="Human-readable error message")
    input: Any = Field(None, description="Invalid input value")


class ProblemDetail(BaseModel):
    """Problem Detail response as defined in RFC 7807.

    Attributes:
        type: URI reference to the problem type (auto-generated from status).
        title: Short, human-readable summary of the problem type.
        status: HTTP status code.
        detail: Human-readable explanation specific to this occurrence.
        instance: URI reference identifying the specific occurrence.
        error: Name of the server error that caused the problem, if any.
        errors: List of validation errors (for 422 responses).

    Example:
        ```python
        problem = ProblemDetail(
            title="Signing refused",
            status=403,
            detail="invalid challenge password",
            instance="/scep",
            error="ChallengeMismatch",
        )
        ```
    """

    type: str | None = Field(
        default=None, description="URI reference to the problem type (RFC 7807)"
    )
    title: str = Field(..., description="Short, human-readable summary")
    status: int = Field(..., description="HTTP status code")
    detail: str | None = Field(default=None, description="Human-readable explanation")
    instance: str | None = Field(
        default=None, description="URI reference identifying this occurrence"
    )
    error: str | None = Field(default=None, description="Server error name")
    errors: list[ValidationErrorDetail] | None = Field(
        default=None, description="Validation errors (for 422 responses)"
    )

    @model_validator(mode="before")
    @classmethod
    def set_default_type(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Set the default type based on the status if not provided."""
        if values.get("type") is None:
            values["type"] = get_rfc_section_url(values.get("status", 500))
        return values
