"""
Circle pipeline functions.

Orchestrates circle flows that span the circle, invitation and connection
services: inviting connections and assembling a profile's circle badges.
"""

import logging
from typing import Optional, List, Dict, Any

from bson import ObjectId

from common.utils.exceptions import ValidationException
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.invitation_service import CircleInvitationService
from circlenet.services.circles.visibility import (
    annotate_circle,
    build_friends_circle,
    visible_circles,
)
from circlenet.services.connections.connection_service import ConnectionService

logger = logging.getLogger(__name__)


async def invite_connection_to_circle(
    invitation_service: CircleInvitationService,
    connection_service: ConnectionService,
    circle_id: str,
    inviter_id: str,
    invitee_id: str,
    message: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Invite one of the inviter's connections into a circle.

    Raises:
        ValidationException: If the invitee is not connected to the inviter
    """
    if not await connection_service.are_connected(inviter_id, invitee_id):
        raise ValidationException(message="Can only invite connections", code="NOT_CONNECTED")

    return await invitation_service.send_circle_invitation(
        circle_id=circle_id,
        inviter_id=inviter_id,
        invitee_id=invitee_id,
        message=message,
    )


async def get_friends_circle(
    connection_service: ConnectionService,
    db,
    owner_id: str,
) -> Dict[str, Any]:
    """Build the synthetic Friends circle from the owner's connections."""
    users_collection = db["users"]
    owner_oid = ObjectId(owner_id)

    owner = await users_collection.find_one({"_id": owner_oid}) or {"_id": owner_oid}

    connected_ids = await connection_service.get_connected_user_ids(owner_id)
    connected_users: List[Dict[str, Any]] = []
    if connected_ids:
        cursor = users_collection.find({"_id": {"$in": [ObjectId(uid) for uid in connected_ids]}})
        connected_users = await cursor.to_list(length=len(connected_ids))

    return build_friends_circle(owner, connected_users)


async def get_profile_circles(
    circle_service: CircleService,
    connection_service: ConnectionService,
    db,
    owner_id: str,
    viewer_id: str,
    view_mode: bool = False,
) -> List[Dict[str, Any]]:
    """
    Circles shown on a profile.

    Circles are evaluated for the profile owner. Only the owner may see
    disabled circles greyed out; any other viewer gets view mode
    regardless of the requested flag. The owner additionally sees their
    Friends circle first.
    """
    is_owner = str(viewer_id) == str(owner_id)
    if not is_owner:
        view_mode = True

    circles = await circle_service.get_circles_for_user(owner_id)
    evaluated = visible_circles(circles, owner_id, view_mode=view_mode)

    if is_owner:
        friends = await get_friends_circle(connection_service, db, owner_id)
        evaluated.insert(0, annotate_circle(friends, owner_id))

    return evaluated
