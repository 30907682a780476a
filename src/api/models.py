"""
Response models for the web surface.
"""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check."""

    status: str = Field(..., description="healthy, degraded or idle")
    running: bool = Field(..., description="Whether the polling loop is running")
    last_checked: str | None = Field(None, description="Lower bound of the next fetch window")
    identity_resolved: bool = Field(False, description="Operating-context member resolved")
    destinations: dict[str, str] = Field(
        default_factory=dict,
        description="Resolved destination folder per category",
    )
    token_present: bool = Field(..., description="A refresh token is on file")
    last_cycle: dict | None = Field(None, description="Summary of the most recent cycle")
