"""
Relationship status derivation.

Pure functions that interpret raw connection requests and circle
invitations into the status enums the rest of the app consumes. The
storage-backed services load records and then defer to these.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from circlenet.services.circles.visibility import (
    find_membership,
    get_circle_id,
    get_creator_id,
    same_id,
)


class RequestStatus(str, Enum):
    """Status shared by connection requests and circle invitations."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class ResponseAction(str, Enum):
    """Action a receiver/invitee takes on a pending request."""

    ACCEPT = "accept"
    DECLINE = "decline"

    def to_status(self) -> RequestStatus:
        if self is ResponseAction.ACCEPT:
            return RequestStatus.ACCEPTED
        return RequestStatus.DECLINED


class RelationshipStatus(str, Enum):
    NONE = "none"
    PENDING_OUTGOING = "pending_outgoing"
    PENDING_INCOMING = "pending_incoming"
    CONNECTED = "connected"


class CircleMembershipStatus(str, Enum):
    NOT_MEMBER = "not_member"
    INVITED_PENDING = "invited_pending"
    MEMBER = "member"
    INVITATION_DECLINED = "invitation_declined"


# Statuses that block a new request between the same pair
ACTIVE_REQUEST_STATUSES = (RequestStatus.PENDING.value, RequestStatus.ACCEPTED.value)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def is_resolved(status: str) -> bool:
    """Resolved requests and invitations never transition again."""
    return status in (RequestStatus.ACCEPTED.value, RequestStatus.DECLINED.value)


def _is_between(request: Dict[str, Any], user_a: Any, user_b: Any) -> bool:
    sender = request.get("senderId")
    receiver = request.get("receiverId")
    return (same_id(sender, user_a) and same_id(receiver, user_b)) or (
        same_id(sender, user_b) and same_id(receiver, user_a)
    )


def _created_at(record: Dict[str, Any]) -> datetime:
    # MongoDB hands back naive UTC datetimes
    created_at = record.get("createdAt")
    if not isinstance(created_at, datetime):
        return _EPOCH
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at


def find_active_request(
    user_a: Any,
    user_b: Any,
    requests: Iterable[Dict[str, Any]],
) -> Optional[Dict[str, Any]]:
    """
    Return the pending or accepted request between an unordered pair.

    An accepted request is preferred over a pending one.
    """
    pair = [r for r in requests if _is_between(r, user_a, user_b)]

    for request in pair:
        if request.get("status") == RequestStatus.ACCEPTED.value:
            return request

    for request in pair:
        if request.get("status") == RequestStatus.PENDING.value:
            return request

    return None


def relationship_status(
    user_a: Any,
    user_b: Any,
    requests: Iterable[Dict[str, Any]],
) -> RelationshipStatus:
    """
    Derive the relationship between two users as seen by ``user_a``.

    An accepted request between the pair always wins over any stale pending
    record, which keeps ``connected`` symmetric.
    """
    active = find_active_request(user_a, user_b, requests)

    if active is None:
        return RelationshipStatus.NONE

    if active.get("status") == RequestStatus.ACCEPTED.value:
        return RelationshipStatus.CONNECTED

    if same_id(active.get("senderId"), user_a):
        return RelationshipStatus.PENDING_OUTGOING

    return RelationshipStatus.PENDING_INCOMING


def circle_membership_status(
    circle: Dict[str, Any],
    user_id: Any,
    invitations: Iterable[Dict[str, Any]],
) -> CircleMembershipStatus:
    """
    Derive a user's membership status in a circle.

    A disabled membership is still a membership; whether it is usable is
    answered by the visibility module.

    Args:
        circle: Circle record with its memberships loaded
        user_id: User to evaluate
        invitations: Invitation records; those for other circles or other
            users are ignored
    """
    if same_id(get_creator_id(circle), user_id) or find_membership(circle, user_id):
        return CircleMembershipStatus.MEMBER

    circle_id = get_circle_id(circle)
    relevant: List[Dict[str, Any]] = [
        inv for inv in invitations
        if same_id(inv.get("circleId"), circle_id) and same_id(inv.get("inviteeId"), user_id)
    ]

    if any(inv.get("status") == RequestStatus.PENDING.value for inv in relevant):
        return CircleMembershipStatus.INVITED_PENDING

    if relevant:
        # Later list position breaks createdAt ties
        _, latest = max(
            enumerate(relevant),
            key=lambda pair: (_created_at(pair[1]), pair[0]),
        )
        if latest.get("status") == RequestStatus.DECLINED.value:
            return CircleMembershipStatus.INVITATION_DECLINED

    return CircleMembershipStatus.NOT_MEMBER
