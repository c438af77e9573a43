"""
Pydantic models for connection requests.
"""

from typing import Optional
from pydantic import BaseModel, Field

from circlenet.config import settings


class SendConnectionRequest(BaseModel):
    """Request body for sending a connection request."""
    receiverId: str
    message: Optional[str] = Field(None, max_length=settings.REQUEST_MESSAGE_MAX_LENGTH)


class RespondConnectionRequest(BaseModel):
    """Request body for accepting or declining a connection request."""
    action: str = Field(..., description="accept | decline")
