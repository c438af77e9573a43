"""
Connection request management service.

Handles sending, responding to and listing connection requests. A
connection is not stored separately: it is an accepted request between two
users, visible from either side.
"""

import logging
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
    ValidationException,
)
from circlenet.services.connections.relationship import (
    ACTIVE_REQUEST_STATUSES,
    RelationshipStatus,
    RequestStatus,
    ResponseAction,
    relationship_status,
)

logger = logging.getLogger(__name__)


def pair_key(user_a: str, user_b: str) -> str:
    """Order-independent key for a pair of users."""
    first, second = sorted([str(user_a), str(user_b)])
    return f"{first}:{second}"


def parse_action(action: Any) -> ResponseAction:
    """Coerce a raw action into a ResponseAction."""
    try:
        return ResponseAction(action)
    except ValueError:
        raise ValidationException(
            message="Invalid action",
            code="INVALID_ACTION",
            details={"allowed": [a.value for a in ResponseAction]},
        )


def clean_message(message: Optional[str]) -> Optional[str]:
    """Trim a free-text message; empty becomes None."""
    if message is None:
        return None
    return message.strip() or None


class ConnectionService:
    """
    Manages connection requests between users.
    """

    def __init__(self, db: AsyncIOMotorDatabase, list_limit: int = 100):
        """
        Initialize ConnectionService.

        Args:
            db: MongoDB database connection
            list_limit: Maximum number of requests returned by list queries
        """
        self._db = db
        self._requests_collection = db["connectionrequests"]
        self._users_collection = db["users"]
        self._list_limit = list_limit

    @staticmethod
    def _pair_filter(user_a: str, user_b: str) -> Dict[str, Any]:
        a, b = ObjectId(user_a), ObjectId(user_b)
        return {
            "$or": [
                {"senderId": a, "receiverId": b},
                {"senderId": b, "receiverId": a},
            ]
        }

    async def send_connection_request(
        self,
        sender_id: str,
        receiver_id: str,
        message: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Create a pending connection request.

        Args:
            sender_id: User sending the request
            receiver_id: User receiving the request
            message: Optional note to the receiver

        Returns:
            The created request document

        Raises:
            ValidationException: If sender and receiver are the same user
            NotFoundException: If the receiver does not exist
            ConflictException: If a pending or accepted request already
                exists between the pair (declined requests do not block)
        """
        if str(sender_id) == str(receiver_id):
            raise ValidationException(
                message="Cannot send connection request to yourself",
                code="SELF_CONNECTION_REQUEST",
            )

        receiver = await self._users_collection.find_one({"_id": ObjectId(receiver_id)})
        if not receiver:
            raise NotFoundException(message="User not found", code="USER_NOT_FOUND")

        existing = await self._requests_collection.find_one({
            **self._pair_filter(sender_id, receiver_id),
            "status": {"$in": list(ACTIVE_REQUEST_STATUSES)},
        })

        if existing:
            if existing["status"] == RequestStatus.ACCEPTED.value:
                raise ConflictException(message="Already connected", code="ALREADY_CONNECTED")
            raise ConflictException(
                message="Connection request already exists",
                code="CONNECTION_REQUEST_EXISTS",
            )

        now = datetime.now(timezone.utc)
        request_doc = {
            "senderId": ObjectId(sender_id),
            "receiverId": ObjectId(receiver_id),
            "pairKey": pair_key(sender_id, receiver_id),
            "active": True,
            "status": RequestStatus.PENDING.value,
            "message": clean_message(message),
            "respondedAt": None,
            "createdAt": now,
            "updatedAt": now,
        }

        try:
            result = await self._requests_collection.insert_one(request_doc)
        except DuplicateKeyError:
            # Lost a race against a concurrent send for the same pair
            raise ConflictException(
                message="Connection request already exists",
                code="CONNECTION_REQUEST_EXISTS",
            )

        request_doc["_id"] = result.inserted_id
        logger.info(f"Connection request {result.inserted_id} sent from {sender_id} to {receiver_id}")

        return request_doc

    async def get_request(self, request_id: str) -> Dict[str, Any]:
        """Get connection request by ID."""
        request = await self._requests_collection.find_one({"_id": ObjectId(request_id)})
        if not request:
            raise NotFoundException(
                message="Connection request not found",
                code="CONNECTION_REQUEST_NOT_FOUND",
            )
        return request

    async def respond_to_connection_request(
        self,
        request_id: str,
        acting_user_id: str,
        action: str,
    ) -> Dict[str, Any]:
        """
        Accept or decline a pending connection request.

        The write is conditioned on the stored status still being pending,
        so of two concurrent responses exactly one succeeds.

        Args:
            request_id: Request to resolve
            acting_user_id: User responding; must be the receiver
            action: "accept" or "decline"

        Returns:
            The updated request document

        Raises:
            ValidationException: If the action is unknown
            NotFoundException: If the request does not exist
            ForbiddenException: If the acting user is not the receiver
            InvalidStateException: If the request is no longer pending
        """
        response_action = parse_action(action)
        request = await self.get_request(request_id)

        if str(request["receiverId"]) != str(acting_user_id):
            raise ForbiddenException(
                message="Not authorized to respond to this request",
                code="NOT_REQUEST_RECEIVER",
            )

        if request["status"] != RequestStatus.PENDING.value:
            raise InvalidStateException(
                message=f"Connection request already {request['status']}",
                code="REQUEST_ALREADY_RESOLVED",
            )

        new_status = response_action.to_status()
        now = datetime.now(timezone.utc)

        updated = await self._requests_collection.find_one_and_update(
            {"_id": request["_id"], "status": RequestStatus.PENDING.value},
            {
                "$set": {
                    "status": new_status.value,
                    "active": new_status is RequestStatus.ACCEPTED,
                    "respondedAt": now,
                    "updatedAt": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )

        if updated is None:
            logger.warning(f"Connection request {request_id} was resolved concurrently")
            raise InvalidStateException(
                message="Connection request already resolved",
                code="REQUEST_ALREADY_RESOLVED",
            )

        logger.info(f"Connection request {request_id} {new_status.value} by user {acting_user_id}")

        return updated

    async def get_requests_for_user(
        self,
        user_id: str,
        direction: str = "received",
    ) -> List[Dict[str, Any]]:
        """
        Get connection requests sent or received by a user, newest first.

        Raises:
            ValidationException: If direction is not "received" or "sent"
        """
        if direction == "received":
            query = {"receiverId": ObjectId(user_id)}
        elif direction == "sent":
            query = {"senderId": ObjectId(user_id)}
        else:
            raise ValidationException(
                message="Request type must be 'received' or 'sent'",
                code="INVALID_REQUEST_TYPE",
            )

        cursor = self._requests_collection.find(query).sort("createdAt", -1)
        return await cursor.to_list(length=self._list_limit)

    async def get_requests_between(self, user_a: str, user_b: str) -> List[Dict[str, Any]]:
        """Get every request between two users, in either direction."""
        cursor = self._requests_collection.find(self._pair_filter(user_a, user_b))
        return await cursor.to_list(length=self._list_limit)

    async def get_relationship_status(self, user_a: str, user_b: str) -> RelationshipStatus:
        """Relationship between two users as seen by user_a."""
        if str(user_a) == str(user_b):
            return RelationshipStatus.NONE
        requests = await self.get_requests_between(user_a, user_b)
        return relationship_status(user_a, user_b, requests)

    async def are_connected(self, user_a: str, user_b: str) -> bool:
        status = await self.get_relationship_status(user_a, user_b)
        return status is RelationshipStatus.CONNECTED

    async def get_connected_user_ids(self, user_id: str) -> List[str]:
        """Get the ids of everyone the user is connected with."""
        oid = ObjectId(user_id)
        cursor = self._requests_collection.find({
            "$or": [{"senderId": oid}, {"receiverId": oid}],
            "status": RequestStatus.ACCEPTED.value,
        })
        accepted = await cursor.to_list(length=1000)

        connected = []
        for request in accepted:
            other = request["receiverId"] if request["senderId"] == oid else request["senderId"]
            connected.append(str(other))

        return connected

    async def remove_connection(self, user_id: str, other_user_id: str) -> Dict[str, Any]:
        """
        Remove the connection between two users.

        Raises:
            NotFoundException: If the users are not connected
        """
        result = await self._requests_collection.delete_one({
            **self._pair_filter(user_id, other_user_id),
            "status": RequestStatus.ACCEPTED.value,
        })

        if result.deleted_count == 0:
            raise NotFoundException(message="Connection not found", code="CONNECTION_NOT_FOUND")

        logger.info(f"Connection between {user_id} and {other_user_id} removed")

        return {"message": "Connection removed successfully"}
