"""Unit tests for CircleInvitationService."""

import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import AsyncMock, MagicMock
from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from common.utils.exceptions import (
    ConflictException,
    ForbiddenException,
    InvalidStateException,
    NotFoundException,
)
from circlenet.services.circles.invitation_service import CircleInvitationService, can_invite
from circlenet.services.connections.relationship import CircleMembershipStatus


# ─────────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────────


@pytest.fixture
def invitations_col(collections):
    return collections["circleinvitations"]


@pytest.fixture
def memberships_col(collections):
    return collections["circlememberships"]


@pytest.fixture
def invitation_service(mock_db):
    return CircleInvitationService(mock_db)


@pytest.fixture
def stored_circle(sample_circle, collections):
    doc = {k: v for k, v in sample_circle.items() if k != "memberships"}
    collections["circlebadges"].find_one.return_value = doc
    collections["circlememberships"].find.return_value.sort.return_value.to_list = AsyncMock(
        return_value=sample_circle["memberships"]
    )
    return sample_circle


@pytest.fixture
def pending_invitation(sample_circle, creator_id, outsider_id):
    now = datetime.now(timezone.utc)
    return {
        "_id": ObjectId(),
        "circleId": sample_circle["_id"],
        "inviterId": ObjectId(creator_id),
        "inviteeId": ObjectId(outsider_id),
        "status": "pending",
        "message": None,
        "respondedAt": None,
        "createdAt": now,
        "updatedAt": now,
    }


def _set_pair_invitations(invitations_col, invitations):
    invitations_col.find.return_value.to_list = AsyncMock(return_value=invitations)


# ─────────────────────────────────────────────────────────────────
# can_invite
# ─────────────────────────────────────────────────────────────────


class TestCanInvite:
    def test_creator_can_invite(self, sample_circle, creator_id):
        assert can_invite(sample_circle, creator_id) is True

    def test_member_needs_invite_flag(self, sample_circle, member_id):
        assert can_invite(sample_circle, member_id) is False

        sample_circle["memberships"][0]["canInvite"] = True
        assert can_invite(sample_circle, member_id) is True

    def test_disabled_circle_blocks_invites(self, sample_circle, creator_id):
        sample_circle["isDisabled"] = True

        assert can_invite(sample_circle, creator_id) is False

    def test_outsider_cannot_invite(self, sample_circle, outsider_id):
        assert can_invite(sample_circle, outsider_id) is False


# ─────────────────────────────────────────────────────────────────
# send_circle_invitation
# ─────────────────────────────────────────────────────────────────


class TestSendCircleInvitation:
    @pytest.mark.asyncio
    async def test_creates_pending_invitation(
        self, invitation_service, invitations_col, stored_circle, creator_id, outsider_id,
    ):
        _set_pair_invitations(invitations_col, [])
        inserted_id = ObjectId()
        invitations_col.insert_one.return_value = MagicMock(inserted_id=inserted_id)

        result = await invitation_service.send_circle_invitation(
            str(stored_circle["_id"]), creator_id, outsider_id, message="Join us"
        )

        assert result["_id"] == inserted_id
        assert result["status"] == "pending"
        assert result["circleId"] == stored_circle["_id"]
        assert result["inviteeId"] == ObjectId(outsider_id)

    @pytest.mark.asyncio
    async def test_existing_member_conflicts(
        self, invitation_service, invitations_col, stored_circle, creator_id, member_id,
    ):
        _set_pair_invitations(invitations_col, [])

        with pytest.raises(ConflictException) as exc:
            await invitation_service.send_circle_invitation(str(stored_circle["_id"]), creator_id, member_id)

        assert exc.value.code == "ALREADY_MEMBER"
        invitations_col.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_pending_invitation_conflicts(
        self, invitation_service, invitations_col, stored_circle, pending_invitation, creator_id, outsider_id,
    ):
        _set_pair_invitations(invitations_col, [pending_invitation])

        with pytest.raises(ConflictException) as exc:
            await invitation_service.send_circle_invitation(str(stored_circle["_id"]), creator_id, outsider_id)

        assert exc.value.code == "INVITATION_PENDING"

    @pytest.mark.asyncio
    async def test_declined_invitee_can_be_invited_again(
        self, invitation_service, invitations_col, stored_circle, pending_invitation, creator_id, outsider_id,
    ):
        declined = dict(pending_invitation, status="declined")
        _set_pair_invitations(invitations_col, [declined])
        invitations_col.insert_one.return_value = MagicMock(inserted_id=ObjectId())

        result = await invitation_service.send_circle_invitation(
            str(stored_circle["_id"]), creator_id, outsider_id
        )

        assert result["status"] == "pending"
        invitations_col.insert_one.assert_called_once()

    @pytest.mark.asyncio
    async def test_member_without_rights_forbidden(
        self, invitation_service, invitations_col, stored_circle, member_id, outsider_id,
    ):
        with pytest.raises(ForbiddenException) as exc:
            await invitation_service.send_circle_invitation(str(stored_circle["_id"]), member_id, outsider_id)

        assert exc.value.code == "NO_INVITE_RIGHTS"
        invitations_col.insert_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_duplicate_key_on_insert_is_conflict(
        self, invitation_service, invitations_col, stored_circle, creator_id, outsider_id,
    ):
        _set_pair_invitations(invitations_col, [])
        invitations_col.insert_one.side_effect = DuplicateKeyError("pending_circle_invitee_unique_idx")

        with pytest.raises(ConflictException):
            await invitation_service.send_circle_invitation(str(stored_circle["_id"]), creator_id, outsider_id)

    @pytest.mark.asyncio
    async def test_unknown_circle(self, invitation_service, collections, creator_id, outsider_id):
        collections["circlebadges"].find_one.return_value = None

        with pytest.raises(NotFoundException):
            await invitation_service.send_circle_invitation(str(ObjectId()), creator_id, outsider_id)


# ─────────────────────────────────────────────────────────────────
# respond_to_circle_invitation
# ─────────────────────────────────────────────────────────────────


class TestRespondToCircleInvitation:
    @pytest.mark.asyncio
    async def test_accept_creates_membership(
        self, invitation_service, invitations_col, memberships_col, pending_invitation, outsider_id,
    ):
        invitations_col.find_one.return_value = pending_invitation
        invitations_col.find_one_and_update.return_value = dict(pending_invitation, status="accepted")

        result = await invitation_service.respond_to_circle_invitation(
            str(pending_invitation["_id"]), outsider_id, "accept"
        )

        assert result["status"] == "accepted"
        assert invitations_col.find_one_and_update.call_args[0][0] == {
            "_id": pending_invitation["_id"],
            "status": "pending",
        }
        call_args = memberships_col.update_one.call_args
        assert call_args[0][0] == {
            "circleId": pending_invitation["circleId"],
            "userId": pending_invitation["inviteeId"],
        }
        assert call_args[0][1]["$setOnInsert"]["isDisabledMember"] is False
        assert call_args[1]["upsert"] is True

    @pytest.mark.asyncio
    async def test_decline_creates_no_membership(
        self, invitation_service, invitations_col, memberships_col, pending_invitation, outsider_id,
    ):
        invitations_col.find_one.return_value = pending_invitation
        invitations_col.find_one_and_update.return_value = dict(pending_invitation, status="declined")

        result = await invitation_service.respond_to_circle_invitation(
            str(pending_invitation["_id"]), outsider_id, "decline"
        )

        assert result["status"] == "declined"
        memberships_col.update_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_membership_failure_reverts_invitation(
        self, invitation_service, invitations_col, memberships_col, pending_invitation, outsider_id,
    ):
        invitations_col.find_one.return_value = pending_invitation
        invitations_col.find_one_and_update.return_value = dict(pending_invitation, status="accepted")
        memberships_col.update_one.side_effect = PyMongoError("write failed")

        with pytest.raises(PyMongoError):
            await invitation_service.respond_to_circle_invitation(
                str(pending_invitation["_id"]), outsider_id, "accept"
            )

        query, update = invitations_col.update_one.call_args[0]
        assert query == {"_id": pending_invitation["_id"], "status": "accepted"}
        assert update["$set"]["status"] == "pending"
        assert update["$set"]["respondedAt"] is None

    @pytest.mark.asyncio
    async def test_only_invitee_may_respond(
        self, invitation_service, invitations_col, pending_invitation, creator_id,
    ):
        invitations_col.find_one.return_value = pending_invitation

        with pytest.raises(ForbiddenException):
            await invitation_service.respond_to_circle_invitation(
                str(pending_invitation["_id"]), creator_id, "accept"
            )

        invitations_col.find_one_and_update.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolved_invitation_is_invalid_state(
        self, invitation_service, invitations_col, pending_invitation, outsider_id,
    ):
        invitations_col.find_one.return_value = dict(pending_invitation, status="declined")

        with pytest.raises(InvalidStateException):
            await invitation_service.respond_to_circle_invitation(
                str(pending_invitation["_id"]), outsider_id, "accept"
            )

    @pytest.mark.asyncio
    async def test_lost_race_is_invalid_state(
        self, invitation_service, invitations_col, memberships_col, pending_invitation, outsider_id,
    ):
        invitations_col.find_one.return_value = pending_invitation
        invitations_col.find_one_and_update.return_value = None

        with pytest.raises(InvalidStateException):
            await invitation_service.respond_to_circle_invitation(
                str(pending_invitation["_id"]), outsider_id, "accept"
            )

        memberships_col.update_one.assert_not_called()


# ─────────────────────────────────────────────────────────────────
# get_membership_status
# ─────────────────────────────────────────────────────────────────


class TestMembershipStatus:
    @pytest.mark.asyncio
    async def test_latest_declined(
        self, invitation_service, invitations_col, stored_circle, pending_invitation, outsider_id,
    ):
        older = dict(pending_invitation, _id=ObjectId(), status="declined",
                     createdAt=pending_invitation["createdAt"] - timedelta(days=2))
        newer = dict(pending_invitation, status="declined")
        _set_pair_invitations(invitations_col, [older, newer])

        status = await invitation_service.get_membership_status(str(stored_circle["_id"]), outsider_id)

        assert status is CircleMembershipStatus.INVITATION_DECLINED

    @pytest.mark.asyncio
    async def test_member(self, invitation_service, invitations_col, stored_circle, member_id):
        _set_pair_invitations(invitations_col, [])

        status = await invitation_service.get_membership_status(str(stored_circle["_id"]), member_id)

        assert status is CircleMembershipStatus.MEMBER
