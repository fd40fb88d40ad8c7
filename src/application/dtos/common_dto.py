"""Common DTOs for operation results and API responses."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from src.domain.errors import VersionGraphError


class OperationError(BaseModel):
    """Machine-readable failure description."""
    code: str = Field(..., description="Error class name", examples=["ConflictError"])
    details: str = Field(..., description="Additional information about the failure")


class OperationResult(BaseModel):
    """Outcome of a mutating operation. Expected failures are reported here instead of raised."""
    success: bool = Field(..., description="Whether the operation was applied")
    message: str = Field(..., description="Human-readable outcome")
    version_id: Optional[str] = Field(None, description="Version created or affected by the operation")
    branch_id: Optional[str] = Field(None, description="Branch created or affected by the operation")
    error: Optional[OperationError] = Field(None, description="Failure details when success is false")

    @classmethod
    def ok(
        cls, message: str, version_id: str | None = None, branch_id: str | None = None
    ) -> OperationResult:
        return cls(success=True, message=message, version_id=version_id, branch_id=branch_id)

    @classmethod
    def failure(cls, exc: VersionGraphError) -> OperationResult:
        return cls(
            success=False,
            message=exc.message,
            error=OperationError(code=exc.code, details=exc.details),
        )


class ErrorResponse(BaseModel):
    """Standard error response model."""
    detail: str = Field(..., description="Error message describing what went wrong")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Health status", examples=["healthy"])


class RootResponse(BaseModel):
    """Root endpoint response model."""
    status: str = Field(..., description="API status", examples=["ok"])
    service: str = Field(..., description="Service name", examples=["version-graph-engine"])
    version: str = Field(..., description="API version", examples=["0.1.0"])
