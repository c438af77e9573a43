"""Shared test fixtures for Circlenet backend tests."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId


def make_collection():
    collection = AsyncMock()
    # Motor's find() returns a cursor synchronously (not a coroutine),
    # so use MagicMock for it. Async methods like find_one, insert_one,
    # update_one etc. stay as AsyncMock.
    collection.find = MagicMock()
    # Empty cursor unless a test sets its own results
    collection.find.return_value.to_list = AsyncMock(return_value=[])
    collection.find.return_value.sort.return_value.to_list = AsyncMock(return_value=[])
    return collection


@pytest.fixture
def collections():
    return {
        "users": make_collection(),
        "circlebadges": make_collection(),
        "circlememberships": make_collection(),
        "connectionrequests": make_collection(),
        "circleinvitations": make_collection(),
    }


@pytest.fixture
def mock_db(collections):
    db = MagicMock()
    db.__getitem__ = MagicMock(side_effect=lambda key: collections.get(key, AsyncMock()))
    return db


@pytest.fixture
def creator_id():
    return str(ObjectId())


@pytest.fixture
def member_id():
    return str(ObjectId())


@pytest.fixture
def outsider_id():
    return str(ObjectId())


@pytest.fixture
def sample_circle(creator_id, member_id):
    """A stored circle with one active membership loaded."""
    now = datetime.now(timezone.utc)
    circle_id = ObjectId()
    return {
        "_id": circle_id,
        "creatorId": ObjectId(creator_id),
        "name": "Study Group",
        "description": None,
        "color": "#3B82F6",
        "icon": "users",
        "isDefault": False,
        "isDisabled": False,
        "isCreatorDisabled": False,
        "createdAt": now,
        "updatedAt": now,
        "memberships": [
            {
                "_id": ObjectId(),
                "circleId": circle_id,
                "userId": ObjectId(member_id),
                "status": "active",
                "isDisabledMember": False,
                "canInvite": False,
                "joinedAt": now,
            }
        ],
    }
