"""
Pydantic schemas for row validation results.
"""

from pydantic import BaseModel, ConfigDict, Field


class RowError(BaseModel):
    """Schema for a single validation failure on one row."""

    model_config = ConfigDict(frozen=True)

    field: str = Field(..., description="Field key the error belongs to")
    message: str = Field(..., description="Error description shown to the user")
    fixable: bool = Field(default=False, description="Whether a replacement value is known")
    suggestion: str | None = Field(default=None, description="Replacement value for fixable errors")
