"""
FastAPI router for circle endpoints.

Provides endpoints for circles, members, membership status and invitations.
"""

import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from circlenet.dependencies import (
    require_auth,
    get_main_db,
    get_circle_service,
    get_invitation_service,
    get_connection_service,
)
from circlenet.pipelines.circles import get_profile_circles, invite_connection_to_circle
from circlenet.routers.formatters import format_circle, format_invitation, format_member
from circlenet.schemas.circles import (
    CreateCircleRequest,
    SendCircleInvitationRequest,
    RespondInvitationRequest,
)
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.invitation_service import CircleInvitationService
from circlenet.services.connections.connection_service import ConnectionService
from common.utils import success_response, list_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/circles", tags=["circles"])


@router.get("")
async def list_circles(
    user_id: Annotated[str, Depends(require_auth)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
    db=Depends(get_main_db),
    userId: Optional[str] = Query(None, description="Profile owner; defaults to caller"),
    viewMode: bool = Query(False, description="Hide disabled circles"),
):
    """Get circles for a profile, evaluated for the profile owner."""
    owner_id = userId or user_id

    circles = await get_profile_circles(
        circle_service=circle_service,
        connection_service=connection_service,
        db=db,
        owner_id=owner_id,
        viewer_id=user_id,
        view_mode=viewMode,
    )

    return list_response([format_circle(c) for c in circles])


@router.post("")
async def create_circle(
    body: CreateCircleRequest,
    user_id: Annotated[str, Depends(require_auth)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Create a new circle."""
    circle = await circle_service.create_circle(
        creator_id=user_id,
        name=body.name,
        description=body.description,
        color=body.color,
        icon=body.icon,
    )

    return success_response(format_circle(circle), message="Circle created")


# =============================================================================
# Invitations
# =============================================================================

@router.get("/invitations")
async def list_invitations(
    user_id: Annotated[str, Depends(require_auth)],
    invitation_service: Annotated[CircleInvitationService, Depends(get_invitation_service)],
    type: str = Query("received", description="received | sent"),
    circleId: Optional[str] = Query(None),
):
    """Get circle invitations received or sent by the caller."""
    invitations = await invitation_service.get_invitations_for_user(
        user_id=user_id,
        direction=type,
        circle_id=circleId,
    )

    return list_response([format_invitation(i) for i in invitations])


@router.post("/invitations")
async def send_invitation(
    body: SendCircleInvitationRequest,
    user_id: Annotated[str, Depends(require_auth)],
    invitation_service: Annotated[CircleInvitationService, Depends(get_invitation_service)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Invite a connection into a circle."""
    invitation = await invite_connection_to_circle(
        invitation_service=invitation_service,
        connection_service=connection_service,
        circle_id=body.circleId,
        inviter_id=user_id,
        invitee_id=body.inviteeId,
        message=body.message,
    )

    return success_response(format_invitation(invitation), message="Invitation sent")


@router.put("/invitations/{invitation_id}")
async def respond_to_invitation(
    invitation_id: str,
    body: RespondInvitationRequest,
    user_id: Annotated[str, Depends(require_auth)],
    invitation_service: Annotated[CircleInvitationService, Depends(get_invitation_service)],
):
    """Accept or decline a circle invitation."""
    invitation = await invitation_service.respond_to_circle_invitation(
        invitation_id=invitation_id,
        acting_user_id=user_id,
        action=body.action,
    )

    return success_response(
        format_invitation(invitation),
        message=f"Invitation {invitation['status']}",
    )


# =============================================================================
# Members
# =============================================================================

@router.get("/{circle_id}/members")
async def get_members(
    circle_id: str,
    user_id: Annotated[str, Depends(require_auth)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
):
    """Get a circle's members, creator first."""
    result = await circle_service.get_circle_members(circle_id)

    return success_response({
        "circle": format_circle(result["circle"]),
        "members": [format_member(m) for m in result["members"]],
    })


@router.get("/{circle_id}/membership-status")
async def get_membership_status(
    circle_id: str,
    user_id: Annotated[str, Depends(require_auth)],
    invitation_service: Annotated[CircleInvitationService, Depends(get_invitation_service)],
    userId: Optional[str] = Query(None, description="User to check; defaults to caller"),
):
    """Get a user's membership status in a circle."""
    target_id = userId or user_id
    status = await invitation_service.get_membership_status(circle_id, target_id)

    return success_response({
        "circleId": circle_id,
        "userId": target_id,
        "status": status.value,
    })
