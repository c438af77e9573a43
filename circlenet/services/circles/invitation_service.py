"""
Circle invitation management service.

Manages circle invitations including sending, responding and listing.
Accepting an invitation and creating the membership row happen in one
transition: an accepted invitation never exists without its membership.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.visibility import (
    find_membership,
    is_circle_visible,
    same_id,
)
from circlenet.services.connections.connection_service import clean_message, parse_action
from circlenet.services.connections.relationship import (
    CircleMembershipStatus,
    RequestStatus,
    ResponseAction,
    circle_membership_status,
)

logger = logging.getLogger(__name__)


def can_invite(circle: Dict[str, Any], user_id: str) -> bool:
    """
    Whether the user may invite others into the circle.

    The creator always may; other members only when their membership has
    ``canInvite`` set. Nobody may invite into a circle that is disabled
    for them.
    """
    if not is_circle_visible(circle, user_id):
        return False

    if same_id(circle.get("creatorId"), user_id):
        return True

    membership = find_membership(circle, user_id)
    return bool(membership and membership.get("canInvite"))


class CircleInvitationService:
    """
    Manages invitations to join a circle.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        circle_service: Optional[CircleService] = None,
        list_limit: int = 100,
    ):
        """
        Initialize CircleInvitationService.

        Args:
            db: MongoDB database connection
            circle_service: Used to load circles with memberships
            list_limit: Maximum number of invitations returned by list queries
        """
        self._db = db
        self._invitations_collection = db["circleinvitations"]
        self._memberships_collection = db["circlememberships"]
        self._circle_service = circle_service or CircleService(db)
        self._list_limit = list_limit

    async def _get_invitations_for_pair(self, circle_id: ObjectId, invitee_id: str) -> List[Dict[str, Any]]:
        cursor = self._invitations_collection.find({
            "circleId": circle_id,
            "inviteeId": ObjectId(invitee_id),
        })
        return await cursor.to_list(length=self._list_limit)

    async def send_circle_invitation(
        self,
        circle_id: str,
        inviter_id: str,
        invitee_id: str,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Invite a user to a circle.

        A previously declined invitee can be invited again.

        Args:
            circle_id: Circle to invite into
            inviter_id: User sending the invitation
            invitee_id: User being invited
            message: Optional note to the invitee

        Returns:
            The created invitation document

        Raises:
            NotFoundException: If the circle does not exist
            ForbiddenException: If the inviter has no invite rights
            ConflictException: If the invitee is already a member or has a
                pending invitation for this circle
        """
        circle = await self._circle_service.get_circle(circle_id)

        if not can_invite(circle, inviter_id):
            raise ForbiddenException(
                message="Not authorized to invite to this circle",
                code="NO_INVITE_RIGHTS",
            )

        invitations = await self._get_invitations_for_pair(circle["_id"], invitee_id)
        status = circle_membership_status(circle, invitee_id, invitations)

        if status is CircleMembershipStatus.MEMBER:
            raise ConflictException(message="User is already a member", code="ALREADY_MEMBER")

        if status is CircleMembershipStatus.INVITED_PENDING:
            raise ConflictException(message="User already has a pending invitation", code="INVITATION_PENDING")

        now = datetime.now(timezone.utc)
        invitation_doc = {
            "circleId": circle["_id"],
            "inviterId": ObjectId(inviter_id),
            "inviteeId": ObjectId(invitee_id),
            "status": RequestStatus.PENDING.value,
            "message": clean_message(message),
            "respondedAt": None,
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = await self._invitations_collection.insert_one(invitation_doc)
        except DuplicateKeyError:
            raise ConflictException(message="User already has a pending invitation", code="INVITATION_PENDING")

        invitation_doc["_id"] = result.inserted_id
        logger.info(f"Invitation {result.inserted_id} to circle {circle_id} sent to user {invitee_id}")

        return invitation_doc

    async def get_invitation(self, invitation_id: str) -> Dict[str, Any]:
        """Get invitation by ID."""
        invitation = await self._invitations_collection.find_one({"_id": ObjectId(invitation_id)})
        if not invitation:
            raise NotFoundException(message="Invitation not found", code="INVITATION_NOT_FOUND")
        return invitation

    async def _create_membership(self, invitation: Dict[str, Any], now: datetime) -> None:
        # Upsert keeps (circleId, userId) unique and leaves existing disable flags alone
        await self._memberships_collection.update_one(
            {"circleId": invitation["circleId"], "userId": invitation["inviteeId"]},
            {
                "$set": {"status": "active", "updatedAt": now},
                "$setOnInsert": {
                    "isDisabledMember": False,
                    "canInvite": False,
                    "joinedAt": now,
                    "createdAt": now,
                },
            },
            upsert=True,
        )

    async def respond_to_circle_invitation(
        self,
        invitation_id: str,
        acting_user_id: str,
        action: str,
    ) -> Dict[str, Any]:
        """
        Accept or decline a pending invitation.

        On accept the invitation is moved to accepted and the membership row
        is written. If the membership write fails the invitation is put back
        to pending before the error propagates.

        Raises:
            ValidationException: If the action is unknown
            NotFoundException: If the invitation does not exist
            ForbiddenException: If the acting user is not the invitee
            InvalidStateException: If the invitation is no longer pending
        """
        response_action = parse_action(action)
        invitation = await self.get_invitation(invitation_id)

        if str(invitation["inviteeId"]) != str(acting_user_id):
            raise ForbiddenException(
                message="Not authorized to respond to this invitation",
                code="NOT_INVITEE",
            )

        if invitation["status"] != RequestStatus.PENDING.value:
            raise InvalidStateException(
                message=f"Invitation already {invitation['status']}",
                code="INVITATION_ALREADY_RESOLVED",
            )

        new_status = response_action.to_status()
        now = datetime.now(timezone.utc)

        updated = await self._invitations_collection.find_one_and_update(
            {"_id": invitation["_id"], "status": RequestStatus.PENDING.value},
            {"$set": {"status": new_status.value, "respondedAt": now, "updatedAt": now}},
            return_document=ReturnDocument.AFTER,
        )

        if updated is None:
            logger.warning(f"Invitation {invitation_id} was resolved concurrently")
            raise InvalidStateException(
                message="Invitation already resolved",
                code="INVITATION_ALREADY_RESOLVED",
            )

        if response_action is ResponseAction.ACCEPT:
            try:
                await self._create_membership(updated, now)
            except PyMongoError as e:
                logger.error(f"Membership write failed for invitation {invitation_id}: {e}")
                await self._invitations_collection.update_one(
                    {"_id": invitation["_id"], "status": RequestStatus.ACCEPTED.value},
                    {"$set": {"status": RequestStatus.PENDING.value, "respondedAt": None, "updatedAt": now}},
                )
                raise

        logger.info(f"Invitation {invitation_id} {new_status.value} by user {acting_user_id}")

        return updated

    async def get_invitations_for_user(
        self,
        user_id: str,
        direction: str = "received",
        circle_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Get invitations received or sent by a user, newest first.

        Raises:
            ValidationException: If direction is not "received" or "sent"
        """
        if direction == "received":
            query: Dict[str, Any] = {"inviteeId": ObjectId(user_id)}
        elif direction == "sent":
            query = {"inviterId": ObjectId(user_id)}
        else:
            raise ValidationException(
                message="Invitation type must be 'received' or 'sent'",
                code="INVALID_INVITATION_TYPE",
            )

        if circle_id:
            query["circleId"] = ObjectId(circle_id)

        cursor = self._invitations_collection.find(query).sort("createdAt", -1)
        return await cursor.to_list(length=self._list_limit)

    async def get_membership_status(self, circle_id: str, user_id: str) -> CircleMembershipStatus:
        """A user's membership status in a circle."""
        circle = await self._circle_service.get_circle(circle_id)
        invitations = await self._get_invitations_for_pair(circle["_id"], user_id)
        return circle_membership_status(circle, user_id, invitations)
