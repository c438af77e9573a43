"""
Circlenet database indexes.

Uniqueness rules that the services rely on under concurrent writes:

| Collection | Index | Purpose |
|---|---|---|
| circlememberships | circleId + userId (unique) | a user appears in a circle at most once |
| connectionrequests | pairKey (unique, active only) | one pending/accepted request per unordered pair |
| circleinvitations | circleId + inviteeId (unique, pending only) | one pending invitation per circle and invitee |

Creation is idempotent; call ``create_indexes`` on every startup.
"""

import logging
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

logger = logging.getLogger(__name__)

CIRCLENET_INDEXES: List[Dict[str, Any]] = [
    # Circles
    {
        "collection": "circlebadges",
        "index": [("creatorId", 1), ("createdAt", 1)],
        "options": {"name": "creator_created_idx"},
    },
    # Memberships
    {
        "collection": "circlememberships",
        "index": [("circleId", 1), ("userId", 1)],
        "options": {"name": "circle_user_unique_idx", "unique": True},
    },
    {
        "collection": "circlememberships",
        "index": [("userId", 1), ("status", 1)],
        "options": {"name": "user_status_idx"},
    },
    # Connection requests
    {
        "collection": "connectionrequests",
        "index": [("pairKey", 1)],
        "options": {
            "name": "active_pair_unique_idx",
            "unique": True,
            "partialFilterExpression": {"active": True},
        },
    },
    {
        "collection": "connectionrequests",
        "index": [("receiverId", 1), ("createdAt", -1)],
        "options": {"name": "receiver_created_idx"},
    },
    {
        "collection": "connectionrequests",
        "index": [("senderId", 1), ("createdAt", -1)],
        "options": {"name": "sender_created_idx"},
    },
    # Circle invitations
    {
        "collection": "circleinvitations",
        "index": [("circleId", 1), ("inviteeId", 1)],
        "options": {
            "name": "pending_circle_invitee_unique_idx",
            "unique": True,
            "partialFilterExpression": {"status": "pending"},
        },
    },
    {
        "collection": "circleinvitations",
        "index": [("inviteeId", 1), ("createdAt", -1)],
        "options": {"name": "invitee_created_idx"},
    },
    {
        "collection": "circleinvitations",
        "index": [("inviterId", 1), ("createdAt", -1)],
        "options": {"name": "inviter_created_idx"},
    },
]


async def create_indexes(db: AsyncIOMotorDatabase) -> int:
    """
    Create every index in CIRCLENET_INDEXES.

    Individual failures are logged and skipped.

    Returns:
        Number of indexes created or already present
    """
    created = 0

    for entry in CIRCLENET_INDEXES:
        try:
            await db[entry["collection"]].create_index(entry["index"], **entry.get("options", {}))
            created += 1
        except PyMongoError as e:
            logger.warning(
                f"Failed to create index {entry['options'].get('name')} on {entry['collection']}: {e}"
            )

    logger.info(f"Ensured {created}/{len(CIRCLENET_INDEXES)} indexes")

    return created
