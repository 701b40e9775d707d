"""
Pydantic response schemas.

Defines the JSON contracts returned by the API routes and by the
error pipeline. No business logic belongs here.
"""

from typing import Any, Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str


class ErrorResponse(BaseModel):
    """Error response returned by the error formatter.

    ``error`` carries diagnostic detail and is only present outside
    production.
    """

    message: str
    error: Optional[dict[str, Any]] = None
