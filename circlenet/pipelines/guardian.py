"""
Guardian oversight pipeline functions.

A parent acts on the circles of a managed child. Every visibility decision
here is made with the child's id as subject, never the parent's.
"""

import logging
from typing import Any, Dict, List

from bson import ObjectId

from common.utils.exceptions import ForbiddenException, ValidationException
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.visibility import (
    DisableScope,
    annotate_circle,
    find_membership,
    same_id,
    visible_circles,
)

logger = logging.getLogger(__name__)

DISABLE_TYPE_CHILD = "child"
DISABLE_TYPE_ALL = "all"


def require_child_link(circle: Dict[str, Any], child_id: str) -> bool:
    """
    Check the child created or belongs to the circle.

    Returns:
        True when the child is the circle's creator

    Raises:
        ForbiddenException: If the child neither created nor belongs to
            the circle
    """
    is_creator = same_id(circle.get("creatorId"), child_id)

    if not is_creator and find_membership(circle, child_id) is None:
        raise ForbiddenException(
            message="Circle does not belong to this child",
            code="CIRCLE_NOT_LINKED_TO_CHILD",
        )

    return is_creator


def resolve_child_scope(circle: Dict[str, Any], child_id: str, disable_type: str) -> DisableScope:
    """
    Map a guardian's disable type onto a disable scope.

    "all" disables the circle for everyone. "child" disables it for the
    child only: the creator flag when the child created the circle,
    otherwise the child's membership flag.

    Raises:
        ForbiddenException: If the child neither created nor belongs to
            the circle
        ValidationException: If the disable type is unknown
    """
    is_creator = require_child_link(circle, child_id)

    if disable_type == DISABLE_TYPE_ALL:
        return DisableScope.GLOBAL

    if disable_type == DISABLE_TYPE_CHILD:
        return DisableScope.CREATOR if is_creator else DisableScope.MEMBER

    raise ValidationException(message="Invalid disable type", code="INVALID_DISABLE_TYPE")


async def verify_guardian(db, parent_id: str, child_id: str) -> Dict[str, Any]:
    """
    Verify the parent manages the child.

    Raises:
        ForbiddenException: If the child is not a student managed by parent
    """
    child = await db["users"].find_one({
        "_id": ObjectId(child_id),
        "parentId": ObjectId(parent_id),
        "role": "student",
    })

    if not child:
        logger.warning(f"Parent {parent_id} attempted to access child {child_id}")
        raise ForbiddenException(
            message="Child not found or not authorized",
            code="NOT_CHILD_GUARDIAN",
        )

    return child


async def get_child_circles(
    circle_service: CircleService,
    db,
    parent_id: str,
    child_id: str,
) -> List[Dict[str, Any]]:
    """
    Get the child's circles as the guardian sees them.

    Disabled circles are kept (annotated) so the guardian can restore them.
    """
    await verify_guardian(db, parent_id, child_id)
    circles = await circle_service.get_circles_for_user(child_id)
    return visible_circles(circles, child_id, view_mode=False)


async def get_child_circle_members(
    circle_service: CircleService,
    db,
    parent_id: str,
    child_id: str,
    circle_id: str,
) -> Dict[str, Any]:
    """
    Get the members of one of the child's circles.

    The circle is evaluated for the child, so a guardian sees it greyed out
    when it is disabled for the child.

    Raises:
        ForbiddenException: If the parent does not manage the child or the
            circle is not linked to the child
        NotFoundException: If the circle does not exist
    """
    await verify_guardian(db, parent_id, child_id)

    result = await circle_service.get_circle_members(circle_id)
    require_child_link(result["circle"], child_id)

    return {
        "circle": annotate_circle(result["circle"], child_id),
        "members": result["members"],
    }


async def disable_circle_for_child(
    circle_service: CircleService,
    db,
    parent_id: str,
    child_id: str,
    circle_id: str,
    disable_type: str,
) -> Dict[str, Any]:
    """
    Disable a circle for the child or for everyone.

    1. Verify the guardian relationship
    2. Resolve the disable type into a scope
    3. Set the flag
    4. Return the circle evaluated for the child
    """
    await verify_guardian(db, parent_id, child_id)

    circle = await circle_service.get_circle(circle_id)
    scope = resolve_child_scope(circle, child_id, disable_type)
    target = None if scope is DisableScope.GLOBAL else child_id

    updated = await circle_service.disable_circle(circle_id, scope, target)

    logger.info(f"Parent {parent_id} disabled circle {circle_id} ({scope.value}) for child {child_id}")

    return annotate_circle(updated, child_id)


async def revoke_circle_for_child(
    circle_service: CircleService,
    db,
    parent_id: str,
    child_id: str,
    circle_id: str,
    disable_type: str,
) -> Dict[str, Any]:
    """
    Restore access to a circle previously disabled by the guardian.

    Clears only the flag matching the disable type.
    """
    await verify_guardian(db, parent_id, child_id)

    circle = await circle_service.get_circle(circle_id)
    scope = resolve_child_scope(circle, child_id, disable_type)
    target = None if scope is DisableScope.GLOBAL else child_id

    updated = await circle_service.revoke_disable(circle_id, scope, target)

    logger.info(f"Parent {parent_id} restored circle {circle_id} ({scope.value}) for child {child_id}")

    return annotate_circle(updated, child_id)
