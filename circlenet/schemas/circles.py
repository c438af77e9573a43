"""
Pydantic models for circle and circle invitation requests.
"""

from typing import Optional
from pydantic import BaseModel, Field

from circlenet.config import settings


class CreateCircleRequest(BaseModel):
    """Request body for creating a circle."""
    name: str = Field(..., min_length=1, max_length=settings.CIRCLE_NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, description="Hex color, e.g. #3B82F6")
    icon: Optional[str] = Field(None, description="Icon name, e.g. users")


class SendCircleInvitationRequest(BaseModel):
    """Request body for inviting a connection into a circle."""
    circleId: str
    inviteeId: str
    message: Optional[str] = Field(None, max_length=settings.REQUEST_MESSAGE_MAX_LENGTH)


class RespondInvitationRequest(BaseModel):
    """Request body for accepting or declining a circle invitation."""
    action: str = Field(..., description="accept | decline")
