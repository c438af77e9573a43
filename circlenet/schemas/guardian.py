"""
Pydantic models for parent oversight of a child's circles.
"""

from pydantic import BaseModel, Field


class CircleDisableRequest(BaseModel):
    """Request body for disabling or restoring a child's circle."""
    circleId: str
    disableType: str = Field(..., description="child | all")
