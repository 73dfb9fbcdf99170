"""Common Pydantic v2 schemas shared across the API.

Provides the response envelope and field-level error details.
"""

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ErrorDetail(BaseModel):
    """A single field-level error."""

    field: str = Field(description="Name of the offending field")
    message: str = Field(description="Human-readable error message")


class Envelope(BaseModel, Generic[T]):
    """Standard response envelope for every endpoint."""

    status: Literal["success", "error"] = "success"
    message: str = Field(description="Human-readable summary")
    data: T | None = None
    errors: list[ErrorDetail] | None = None
