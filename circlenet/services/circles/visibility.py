"""
Circle visibility evaluation.

Single source of truth for whether a circle is usable by a given subject.
Profile badges, the circle list and the guardian oversight screens all call
into this module so they cannot disagree.

Evaluation order (first match wins):
    1. circle.isDisabled                          -> global
    2. subject is creator and isCreatorDisabled   -> creator
    3. subject's membership has isDisabledMember  -> member
    4. otherwise                                  -> none (visible)

Records may come in the stored shape (``creatorId``, memberships with
``userId``) or the API resource shape (``creator: {id}``, memberships with
``user: {id}``). Ids are compared by string value so ObjectId and str
ids are interchangeable.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


FRIENDS_CIRCLE_ID = "friends"
FRIENDS_CIRCLE_NAME = "Friends"
FRIENDS_CIRCLE_COLOR = "#ec4899"
FRIENDS_CIRCLE_ICON = "users"


class DisableScope(str, Enum):
    """Granularity at which a circle is deactivated for a subject."""

    NONE = "none"
    GLOBAL = "global"
    CREATOR = "creator"
    MEMBER = "member"


def same_id(a: Any, b: Any) -> bool:
    """Compare two ids (ObjectId or str) by value."""
    if a is None or b is None:
        return False
    return str(a) == str(b)


def _record_id(record: Optional[Dict[str, Any]]) -> Any:
    if not record:
        return None
    return record.get("_id", record.get("id"))


def get_circle_id(circle: Dict[str, Any]) -> Any:
    return _record_id(circle)


def get_creator_id(circle: Dict[str, Any]) -> Any:
    """Creator id from either ``creatorId`` or the embedded ``creator``."""
    creator_id = circle.get("creatorId")
    if creator_id is None:
        creator_id = _record_id(circle.get("creator"))
    return creator_id


def get_member_user_id(membership: Dict[str, Any]) -> Any:
    """User id from either ``userId`` or the embedded ``user``."""
    user_id = membership.get("userId")
    if user_id is None:
        user_id = _record_id(membership.get("user"))
    return user_id


def find_membership(circle: Dict[str, Any], user_id: Any) -> Optional[Dict[str, Any]]:
    """Return the subject's membership row in the circle, if any."""
    for membership in circle.get("memberships") or []:
        if same_id(get_member_user_id(membership), user_id):
            return membership
    return None


def disable_scope(circle: Dict[str, Any], subject_user_id: Any) -> DisableScope:
    """
    Decide at what scope the circle is disabled for the subject.

    Missing flags count as false, so a circle with no disable data is
    visible (fail-open).

    Args:
        circle: Circle record with its memberships
        subject_user_id: User the decision is made for. Guardian views pass
            the managed child's id, never the guardian's own.

    Returns:
        The first matching DisableScope
    """
    if circle.get("isDisabled"):
        return DisableScope.GLOBAL

    if circle.get("isCreatorDisabled") and same_id(get_creator_id(circle), subject_user_id):
        return DisableScope.CREATOR

    membership = find_membership(circle, subject_user_id)
    if membership and membership.get("isDisabledMember"):
        return DisableScope.MEMBER

    return DisableScope.NONE


def is_circle_visible(circle: Dict[str, Any], subject_user_id: Any) -> bool:
    """True when nothing disables the circle for this subject."""
    return disable_scope(circle, subject_user_id) is DisableScope.NONE


def effective_member_count(circle: Dict[str, Any]) -> int:
    """
    Member count for display: memberships plus the implicit creator.

    Disabled members are still counted. Falls back to ``_count.memberships``
    when the membership rows were not loaded.
    """
    memberships = circle.get("memberships")
    if memberships is not None:
        return len(memberships) + 1
    return (circle.get("_count") or {}).get("memberships", 0) + 1


def annotate_circle(circle: Dict[str, Any], subject_user_id: Any) -> Dict[str, Any]:
    """Return a copy of the circle carrying the decision for the subject."""
    scope = disable_scope(circle, subject_user_id)
    membership = find_membership(circle, subject_user_id)

    return {
        **circle,
        "disableScope": scope.value,
        "isVisible": scope is DisableScope.NONE,
        "memberCount": effective_member_count(circle),
        "isGloballyDisabled": bool(circle.get("isDisabled")),
        "isCreatorDisabledForSubject": bool(
            circle.get("isCreatorDisabled")
            and same_id(get_creator_id(circle), subject_user_id)
        ),
        "isMemberDisabledForSubject": bool(
            membership and membership.get("isDisabledMember")
        ),
    }


def visible_circles(
    circles: Iterable[Dict[str, Any]],
    subject_user_id: Any,
    view_mode: bool = False,
) -> List[Dict[str, Any]]:
    """
    Evaluate a collection of circles for one subject.

    In view mode disabled circles are dropped entirely (badge grids on a
    profile). Otherwise every circle is returned annotated so owner and
    guardian controls can render it greyed out with a restore action.
    """
    annotated = [annotate_circle(circle, subject_user_id) for circle in circles]
    if view_mode:
        return [circle for circle in annotated if circle["isVisible"]]
    return annotated


def build_friends_circle(
    owner: Dict[str, Any],
    connected_users: Iterable[Dict[str, Any]],
) -> Dict[str, Any]:
    """
    Build the synthetic Friends circle for a student.

    It is never persisted and carries no disable flags; its members are the
    owner's accepted connections.

    Args:
        owner: The student's user record
        connected_users: User records on the other side of each connection
    """
    owner_id = _record_id(owner)
    memberships = [
        {
            "userId": _record_id(user),
            "user": user,
            "isDisabledMember": False,
        }
        for user in connected_users
    ]

    return {
        "id": FRIENDS_CIRCLE_ID,
        "name": FRIENDS_CIRCLE_NAME,
        "color": FRIENDS_CIRCLE_COLOR,
        "icon": FRIENDS_CIRCLE_ICON,
        "isDefault": True,
        "isDisabled": False,
        "isCreatorDisabled": False,
        "creatorId": owner_id,
        "creator": owner,
        "memberships": memberships,
        "_count": {"memberships": len(memberships)},
    }
