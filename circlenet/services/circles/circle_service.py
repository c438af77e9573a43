"""
Circle management service.

Handles circle creation, membership loading, and the disable/revoke flags a
guardian sets on behalf of a managed child.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from common.utils.exceptions import (
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from circlenet.services.circles.visibility import (
    DisableScope,
    find_membership,
    same_id,
)

logger = logging.getLogger(__name__)


def parse_scope(scope: Union[DisableScope, str]) -> DisableScope:
    """Coerce a raw scope into a settable DisableScope."""
    try:
        parsed = DisableScope(scope)
    except ValueError:
        parsed = None

    if parsed is None or parsed is DisableScope.NONE:
        raise ValidationException(
            message="Scope must be one of: global, creator, member",
            code="INVALID_DISABLE_SCOPE",
        )
    return parsed


class CircleService:
    """
    Handles circles, their memberships and disable flags.
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        name_max_length: int = 50,
        default_color: str = "#3B82F6",
        default_icon: str = "users",
    ):
        """
        Initialize CircleService.

        Args:
            db: MongoDB database connection
            name_max_length: Maximum circle name length after trimming
            default_color: Badge color used when none is given
            default_icon: Badge icon used when none is given
        """
        self._db = db
        self._circles_collection = db["circlebadges"]
        self._memberships_collection = db["circlememberships"]
        self._users_collection = db["users"]
        self._name_max_length = name_max_length
        self._default_color = default_color
        self._default_icon = default_icon

    async def create_circle(
        self,
        creator_id: str,
        name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a new circle owned by creator_id.

        Raises:
            ValidationException: If the name is empty or too long
        """
        name = (name or "").strip()
        if not name:
            raise ValidationException(message="Circle name is required", code="CIRCLE_NAME_REQUIRED")

        if len(name) > self._name_max_length:
            raise ValidationException(
                message=f"Circle name must be at most {self._name_max_length} characters",
                code="CIRCLE_NAME_TOO_LONG",
            )

        now = datetime.now(timezone.utc)
        circle_doc = {
            "creatorId": ObjectId(creator_id),
            "name": name,
            "description": (description or "").strip() or None,
            "color": color or self._default_color,
            "icon": icon or self._default_icon,
            "isDefault": False,
            "isDisabled": False,
            "isCreatorDisabled": False,
            "createdAt": now,
            "updatedAt": now,
        }

        result = await self._circles_collection.insert_one(circle_doc)
        circle_doc["_id"] = result.inserted_id
        circle_doc["memberships"] = []

        logger.info(f"Circle {result.inserted_id} created by user {creator_id}")

        return circle_doc

    async def _load_memberships(self, circle_ids: List[ObjectId]) -> List[Dict[str, Any]]:
        if not circle_ids:
            return []
        cursor = self._memberships_collection.find({
            "circleId": {"$in": circle_ids},
            "status": "active",
        }).sort("joinedAt", 1)
        return await cursor.to_list(length=5000)

    async def _attach_users(self, circles: List[Dict[str, Any]]) -> None:
        """Attach creator and member user records to each circle in one query."""
        user_ids: Dict[str, ObjectId] = {}
        for circle in circles:
            user_ids[str(circle["creatorId"])] = circle["creatorId"]
            for membership in circle.get("memberships", []):
                user_ids[str(membership["userId"])] = membership["userId"]

        if not user_ids:
            return

        cursor = self._users_collection.find(
            {"_id": {"$in": list(user_ids.values())}},
            {"firstName": 1, "lastName": 1, "profileImageUrl": 1, "role": 1},
        )
        users = await cursor.to_list(length=len(user_ids))
        users_by_id = {str(u["_id"]): u for u in users}

        for circle in circles:
            circle["creator"] = users_by_id.get(str(circle["creatorId"]), {"_id": circle["creatorId"]})
            for membership in circle.get("memberships", []):
                membership["user"] = users_by_id.get(str(membership["userId"]), {"_id": membership["userId"]})

    async def get_circle(self, circle_id: str) -> Dict[str, Any]:
        """Get circle by ID with its active memberships and users attached."""
        circle = await self._circles_collection.find_one({"_id": ObjectId(circle_id)})
        if not circle:
            raise NotFoundException(message="Circle not found", code="CIRCLE_NOT_FOUND")

        circle["memberships"] = await self._load_memberships([circle["_id"]])
        await self._attach_users([circle])
        return circle

    async def get_circles_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """
        Get circles the user created or belongs to.

        Default circles come first, then oldest first. Each circle carries
        its active memberships, its creator and each member's user record.
        """
        oid = ObjectId(user_id)
        member_circle_ids = await self._memberships_collection.distinct(
            "circleId", {"userId": oid, "status": "active"}
        )

        cursor = self._circles_collection.find({
            "$or": [
                {"creatorId": oid},
                {"_id": {"$in": member_circle_ids}},
            ]
        }).sort([("isDefault", -1), ("createdAt", 1)])
        circles = await cursor.to_list(length=200)

        memberships = await self._load_memberships([c["_id"] for c in circles])
        by_circle: Dict[str, List[Dict[str, Any]]] = {}
        for membership in memberships:
            by_circle.setdefault(str(membership["circleId"]), []).append(membership)

        for circle in circles:
            circle["memberships"] = by_circle.get(str(circle["_id"]), [])

        await self._attach_users(circles)

        return circles

    async def get_circle_members(self, circle_id: str) -> Dict[str, Any]:
        """
        Get a circle and its members, creator first.

        Returns:
            dict with circle and members (each with user, isCreator,
            isDisabledMember, joinedAt)
        """
        circle = await self.get_circle(circle_id)

        members = [{
            "user": circle["creator"],
            "isCreator": True,
            "isDisabledMember": False,
            "joinedAt": circle.get("createdAt"),
        }]

        for membership in circle["memberships"]:
            # The creator is listed once, above
            if same_id(membership["userId"], circle["creatorId"]):
                continue
            members.append({
                "user": membership["user"],
                "isCreator": False,
                "isDisabledMember": bool(membership.get("isDisabledMember")),
                "joinedAt": membership.get("joinedAt"),
            })

        return {"circle": circle, "members": members}

    def _require_target(
        self,
        circle: Dict[str, Any],
        scope: DisableScope,
        target_user_id: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """
        Validate the target for creator/member scopes.

        Returns:
            The target's membership row for member scope, else None
        """
        if scope is DisableScope.GLOBAL:
            return None

        if not target_user_id:
            raise ValidationException(
                message=f"A target user is required for {scope.value} scope",
                code="TARGET_USER_REQUIRED",
            )

        if scope is DisableScope.CREATOR:
            if not same_id(circle["creatorId"], target_user_id):
                raise ValidationException(
                    message="Target user is not the creator of this circle",
                    code="TARGET_NOT_CREATOR",
                )
            return None

        membership = find_membership(circle, target_user_id)
        if not membership:
            raise ValidationException(
                message="Target user is not a member of this circle",
                code="NOT_CIRCLE_MEMBER",
            )
        return membership

    async def disable_circle(
        self,
        circle_id: str,
        scope: Union[DisableScope, str],
        target_user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Set the disable flag for the given scope.

        Args:
            circle_id: Circle to disable
            scope: global, creator or member
            target_user_id: Required for creator and member scopes

        Returns:
            The updated circle with memberships

        Raises:
            NotFoundException: If the circle does not exist
            ValidationException: If the scope is invalid or the target does
                not resolve (not the creator / no membership)
        """
        scope = parse_scope(scope)
        circle = await self.get_circle(circle_id)
        membership = self._require_target(circle, scope, target_user_id)
        now = datetime.now(timezone.utc)

        if scope is DisableScope.GLOBAL:
            await self._circles_collection.update_one(
                {"_id": circle["_id"]},
                {"$set": {"isDisabled": True, "updatedAt": now}},
            )
        elif scope is DisableScope.CREATOR:
            await self._circles_collection.update_one(
                {"_id": circle["_id"]},
                {"$set": {"isCreatorDisabled": True, "updatedAt": now}},
            )
        else:
            await self._memberships_collection.update_one(
                {"_id": membership["_id"]},
                {"$set": {"isDisabledMember": True, "updatedAt": now}},
            )

        logger.info(f"Circle {circle_id} disabled ({scope.value}) target={target_user_id}")

        return await self.get_circle(circle_id)

    async def revoke_disable(
        self,
        circle_id: str,
        scope: Union[DisableScope, str],
        target_user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Clear exactly the flag set by the matching disable_circle call.

        The clear is conditioned on the flag still being set.

        Raises:
            NotFoundException: If the circle does not exist
            ValidationException: If the scope or target is invalid
            InvalidStateException: If that scope is not currently disabled
        """
        scope = parse_scope(scope)
        circle = await self.get_circle(circle_id)
        membership = self._require_target(circle, scope, target_user_id)
        now = datetime.now(timezone.utc)

        if scope is DisableScope.GLOBAL:
            result = await self._circles_collection.update_one(
                {"_id": circle["_id"], "isDisabled": True},
                {"$set": {"isDisabled": False, "updatedAt": now}},
            )
        elif scope is DisableScope.CREATOR:
            result = await self._circles_collection.update_one(
                {"_id": circle["_id"], "isCreatorDisabled": True},
                {"$set": {"isCreatorDisabled": False, "updatedAt": now}},
            )
        else:
            result = await self._memberships_collection.update_one(
                {"_id": membership["_id"], "isDisabledMember": True},
                {"$set": {"isDisabledMember": False, "updatedAt": now}},
            )

        if result.modified_count == 0:
            logger.warning(f"Revoke on circle {circle_id} ({scope.value}) found nothing disabled")
            raise InvalidStateException(
                message=f"Circle is not disabled at {scope.value} scope",
                code="SCOPE_NOT_DISABLED",
            )

        logger.info(f"Circle {circle_id} restored ({scope.value}) target={target_user_id}")

        return await self.get_circle(circle_id)
