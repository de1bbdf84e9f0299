"""Error models for the TripCraft API envelope."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Machine-readable error codes returned by the API layer."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    API_ERROR = "API_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    NOT_FOUND = "NOT_FOUND"


class AppError(BaseModel):
    """Error payload rendered by the FastAPI exception handlers."""

    code: ErrorCode
    message: str = Field(..., description="Technical message for logs and clients")
    user_message: Optional[str] = Field(
        None, description="Human-readable message safe to show to end users"
    )
