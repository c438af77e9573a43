"""
Response formatting for Circlenet documents.

Converts stored documents (ObjectId ids, camelCase fields) into the
resource shape returned to clients.
"""

from typing import Any, Dict, Optional


def _str_id(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def format_user(user: Optional[dict]) -> Optional[dict]:
    """Format user document as a compact summary."""
    if not user:
        return None
    return {
        "id": _str_id(user.get("_id", user.get("id"))),
        "firstName": user.get("firstName"),
        "lastName": user.get("lastName"),
        "profileImageUrl": user.get("profileImageUrl"),
        "role": user.get("role"),
    }


def format_membership(membership: dict) -> dict:
    """Format membership document for response."""
    user = membership.get("user") or {"_id": membership.get("userId")}
    return {
        "id": _str_id(membership.get("_id")),
        "userId": _str_id(membership.get("userId")),
        "user": format_user(user),
        "isDisabledMember": bool(membership.get("isDisabledMember")),
        "canInvite": bool(membership.get("canInvite")),
        "joinedAt": membership.get("joinedAt"),
    }


def format_circle(circle: dict) -> Dict[str, Any]:
    """
    Format circle document for response.

    Works for stored circles and the synthetic Friends circle, and carries
    any evaluation fields added by annotate_circle.
    """
    memberships = circle.get("memberships") or []
    creator = circle.get("creator") or {"_id": circle.get("creatorId")}

    formatted = {
        "id": _str_id(circle.get("_id", circle.get("id"))),
        "name": circle.get("name"),
        "description": circle.get("description"),
        "color": circle.get("color"),
        "icon": circle.get("icon"),
        "isDefault": bool(circle.get("isDefault")),
        "isDisabled": bool(circle.get("isDisabled")),
        "isCreatorDisabled": bool(circle.get("isCreatorDisabled")),
        "creatorId": _str_id(circle.get("creatorId")),
        "creator": format_user(creator),
        "memberships": [format_membership(m) for m in memberships],
        "_count": {"memberships": len(memberships)},
        "createdAt": circle.get("createdAt"),
    }

    for key in (
        "disableScope",
        "isVisible",
        "memberCount",
        "isGloballyDisabled",
        "isCreatorDisabledForSubject",
        "isMemberDisabledForSubject",
    ):
        if key in circle:
            formatted[key] = circle[key]

    return formatted


def format_member(member: dict) -> dict:
    """Format an entry of get_circle_members for response."""
    return {
        "user": format_user(member["user"]),
        "isCreator": member["isCreator"],
        "isDisabledMember": member["isDisabledMember"],
        "joinedAt": member.get("joinedAt"),
    }


def format_connection_request(request: dict) -> dict:
    """Format connection request document for response."""
    return {
        "id": str(request["_id"]),
        "senderId": str(request["senderId"]),
        "receiverId": str(request["receiverId"]),
        "status": request["status"],
        "message": request.get("message"),
        "respondedAt": request.get("respondedAt"),
        "createdAt": request.get("createdAt"),
    }


def format_invitation(invitation: dict) -> dict:
    """Format circle invitation document for response."""
    return {
        "id": str(invitation["_id"]),
        "circleId": str(invitation["circleId"]),
        "inviterId": str(invitation["inviterId"]),
        "inviteeId": str(invitation["inviteeId"]),
        "status": invitation["status"],
        "message": invitation.get("message"),
        "respondedAt": invitation.get("respondedAt"),
        "createdAt": invitation.get("createdAt"),
    }
