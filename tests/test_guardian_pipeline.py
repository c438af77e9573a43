"""Unit tests for the parent oversight pipeline."""

import pytest
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId

from common.utils.exceptions import ForbiddenException, NotFoundException, ValidationException
from circlenet.pipelines.guardian import (
    disable_circle_for_child,
    get_child_circle_members,
    get_child_circles,
    resolve_child_scope,
    revoke_circle_for_child,
    verify_guardian,
)
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.visibility import DisableScope


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def parent_id():
    return str(ObjectId())


@pytest.fixture
def circle_service():
    return AsyncMock(spec=CircleService)


@pytest.fixture
def guardian_db(mock_db, collections, parent_id, member_id):
    """Database where member_id is a student managed by parent_id."""
    collections["users"].find_one.return_value = {
        "_id": ObjectId(member_id),
        "parentId": ObjectId(parent_id),
        "role": "student",
    }
    return mock_db


# ─────────────────────────────────────────────────────────────────
# resolve_child_scope
# ─────────────────────────────────────────────────────────────────


class TestResolveChildScope:
    def test_all_is_global(self, sample_circle, member_id):
        assert resolve_child_scope(sample_circle, member_id, "all") is DisableScope.GLOBAL

    def test_child_member_maps_to_member(self, sample_circle, member_id):
        assert resolve_child_scope(sample_circle, member_id, "child") is DisableScope.MEMBER

    def test_child_creator_maps_to_creator(self, sample_circle, creator_id):
        assert resolve_child_scope(sample_circle, creator_id, "child") is DisableScope.CREATOR

    def test_unlinked_circle_forbidden(self, sample_circle, outsider_id):
        with pytest.raises(ForbiddenException):
            resolve_child_scope(sample_circle, outsider_id, "all")

    def test_unknown_disable_type(self, sample_circle, member_id):
        with pytest.raises(ValidationException) as exc:
            resolve_child_scope(sample_circle, member_id, "some")

        assert exc.value.code == "INVALID_DISABLE_TYPE"


# ─────────────────────────────────────────────────────────────────
# verify_guardian
# ─────────────────────────────────────────────────────────────────


class TestVerifyGuardian:
    @pytest.mark.asyncio
    async def test_queries_student_with_parent(self, guardian_db, collections, parent_id, member_id):
        await verify_guardian(guardian_db, parent_id, member_id)

        collections["users"].find_one.assert_called_once_with({
            "_id": ObjectId(member_id),
            "parentId": ObjectId(parent_id),
            "role": "student",
        })

    @pytest.mark.asyncio
    async def test_not_guardian_forbidden(self, mock_db, collections, parent_id, member_id):
        collections["users"].find_one.return_value = None

        with pytest.raises(ForbiddenException) as exc:
            await verify_guardian(mock_db, parent_id, member_id)

        assert exc.value.code == "NOT_CHILD_GUARDIAN"


# ─────────────────────────────────────────────────────────────────
# Pipeline flows
# ─────────────────────────────────────────────────────────────────


class TestGuardianFlows:
    @pytest.mark.asyncio
    async def test_child_circles_evaluated_for_child(
        self, circle_service, guardian_db, sample_circle, parent_id, member_id,
    ):
        sample_circle["memberships"][0]["isDisabledMember"] = True
        circle_service.get_circles_for_user.return_value = [sample_circle]

        circles = await get_child_circles(circle_service, guardian_db, parent_id, member_id)

        circle_service.get_circles_for_user.assert_called_once_with(member_id)
        # Disabled circles stay listed for the guardian
        assert len(circles) == 1
        assert circles[0]["disableScope"] == "member"
        assert circles[0]["isVisible"] is False

    @pytest.mark.asyncio
    async def test_disable_for_child_member(
        self, circle_service, guardian_db, sample_circle, parent_id, member_id,
    ):
        disabled = dict(sample_circle, memberships=[dict(sample_circle["memberships"][0], isDisabledMember=True)])
        circle_service.get_circle.return_value = sample_circle
        circle_service.disable_circle.return_value = disabled

        result = await disable_circle_for_child(
            circle_service, guardian_db, parent_id, member_id, str(sample_circle["_id"]), "child"
        )

        circle_service.disable_circle.assert_called_once_with(
            str(sample_circle["_id"]), DisableScope.MEMBER, member_id
        )
        assert result["disableScope"] == "member"

    @pytest.mark.asyncio
    async def test_disable_all_is_global(
        self, circle_service, guardian_db, sample_circle, parent_id, member_id,
    ):
        circle_service.get_circle.return_value = sample_circle
        circle_service.disable_circle.return_value = dict(sample_circle, isDisabled=True)

        result = await disable_circle_for_child(
            circle_service, guardian_db, parent_id, member_id, str(sample_circle["_id"]), "all"
        )

        circle_service.disable_circle.assert_called_once_with(
            str(sample_circle["_id"]), DisableScope.GLOBAL, None
        )
        assert result["disableScope"] == "global"

    @pytest.mark.asyncio
    async def test_revoke_for_child(
        self, circle_service, guardian_db, sample_circle, parent_id, member_id,
    ):
        circle_service.get_circle.return_value = sample_circle
        circle_service.revoke_disable.return_value = sample_circle

        result = await revoke_circle_for_child(
            circle_service, guardian_db, parent_id, member_id, str(sample_circle["_id"]), "child"
        )

        circle_service.revoke_disable.assert_called_once_with(
            str(sample_circle["_id"]), DisableScope.MEMBER, member_id
        )
        assert result["disableScope"] == "none"

    @pytest.mark.asyncio
    async def test_non_guardian_cannot_disable(
        self, circle_service, mock_db, collections, sample_circle, parent_id, member_id,
    ):
        collections["users"].find_one.return_value = None

        with pytest.raises(ForbiddenException):
            await disable_circle_for_child(
                circle_service, mock_db, parent_id, member_id, str(sample_circle["_id"]), "all"
            )

        circle_service.disable_circle.assert_not_called()


# ─────────────────────────────────────────────────────────────────
# get_child_circle_members
# ─────────────────────────────────────────────────────────────────


def _members_result(circle):
    return {
        "circle": circle,
        "members": [
            {"user": {"_id": circle["creatorId"]}, "isCreator": True, "isDisabledMember": False},
            {"user": {"_id": circle["memberships"][0]["userId"]}, "isCreator": False, "isDisabledMember": False},
        ],
    }


class TestChildCircleMembers:
    @pytest.mark.asyncio
    async def test_members_evaluated_for_child(
        self, circle_service, guardian_db, sample_circle, parent_id, member_id,
    ):
        sample_circle["memberships"][0]["isDisabledMember"] = True
        circle_service.get_circle_members.return_value = _members_result(sample_circle)

        result = await get_child_circle_members(
            circle_service, guardian_db, parent_id, member_id, str(sample_circle["_id"])
        )

        circle_service.get_circle_members.assert_called_once_with(str(sample_circle["_id"]))
        assert result["circle"]["disableScope"] == "member"
        assert result["circle"]["isVisible"] is False
        assert len(result["members"]) == 2
        assert result["members"][0]["isCreator"] is True

    @pytest.mark.asyncio
    async def test_unlinked_circle_forbidden(
        self, circle_service, mock_db, collections, sample_circle, parent_id, outsider_id,
    ):
        collections["users"].find_one.return_value = {
            "_id": ObjectId(outsider_id),
            "parentId": ObjectId(parent_id),
            "role": "student",
        }
        circle_service.get_circle_members.return_value = _members_result(sample_circle)

        with pytest.raises(ForbiddenException) as exc:
            await get_child_circle_members(
                circle_service, mock_db, parent_id, outsider_id, str(sample_circle["_id"])
            )

        assert exc.value.code == "CIRCLE_NOT_LINKED_TO_CHILD"

    @pytest.mark.asyncio
    async def test_non_guardian_forbidden_before_lookup(
        self, circle_service, mock_db, collections, sample_circle, parent_id, member_id,
    ):
        collections["users"].find_one.return_value = None

        with pytest.raises(ForbiddenException) as exc:
            await get_child_circle_members(
                circle_service, mock_db, parent_id, member_id, str(sample_circle["_id"])
            )

        assert exc.value.code == "NOT_CHILD_GUARDIAN"
        circle_service.get_circle_members.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_circle_not_found(
        self, circle_service, guardian_db, parent_id, member_id,
    ):
        circle_service.get_circle_members.side_effect = NotFoundException(
            message="Circle not found", code="CIRCLE_NOT_FOUND"
        )

        with pytest.raises(NotFoundException):
            await get_child_circle_members(
                circle_service, guardian_db, parent_id, member_id, str(ObjectId())
            )
