"""
API request and response type definitions.
"""

from typing import Any

from pydantic import BaseModel, Field


class PublishNotificationRequest(BaseModel):
    """Request body for publishing a notification."""

    type: str = Field(..., min_length=1, description="Notification category")
    order_id: int = Field(..., description="Order identifier")
    user_id: int = Field(..., description="User identifier")
    user_name: str = Field(..., description="Display name of the recipient")
    total: float = Field(..., description="Order total")


class PublishNotificationResponse(BaseModel):
    """Response body after publishing a notification."""

    transport: str
    envelope: dict[str, Any]
    message: str = "Notification queued"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    queue_active: bool


class StatsResponse(BaseModel):
    """Service stats response."""

    service: str
    queue_active: bool
    transport: str
    queue_depth: int | None = None
