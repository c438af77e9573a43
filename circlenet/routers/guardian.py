"""
FastAPI router for parent oversight of a child's circles.

All endpoints require a parent token and act with the child as subject.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from circlenet.dependencies import require_parent, get_main_db, get_circle_service
from circlenet.pipelines.guardian import (
    get_child_circles,
    get_child_circle_members,
    disable_circle_for_child,
    revoke_circle_for_child,
)
from circlenet.routers.formatters import format_circle, format_member
from circlenet.schemas.guardian import CircleDisableRequest
from circlenet.services.circles.circle_service import CircleService
from common.utils import success_response, list_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/parent/child-profile", tags=["parent"])


@router.get("/{child_id}/circles")
async def list_child_circles(
    child_id: str,
    parent_id: Annotated[str, Depends(require_parent)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    db=Depends(get_main_db),
):
    """Get a child's circles, including disabled ones."""
    circles = await get_child_circles(circle_service, db, parent_id, child_id)
    return list_response([format_circle(c) for c in circles])


@router.get("/{child_id}/circles/{circle_id}/members")
async def list_child_circle_members(
    child_id: str,
    circle_id: str,
    parent_id: Annotated[str, Depends(require_parent)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    db=Depends(get_main_db),
):
    """Get the members of a circle the child created or belongs to."""
    result = await get_child_circle_members(circle_service, db, parent_id, child_id, circle_id)
    return success_response({
        "circle": format_circle(result["circle"]),
        "members": [format_member(m) for m in result["members"]],
    })


@router.post("/{child_id}/circles/disable")
async def disable_child_circle(
    child_id: str,
    body: CircleDisableRequest,
    parent_id: Annotated[str, Depends(require_parent)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    db=Depends(get_main_db),
):
    """Disable a circle for the child or for everyone."""
    circle = await disable_circle_for_child(
        circle_service, db, parent_id, child_id, body.circleId, body.disableType
    )
    return success_response(format_circle(circle), message="Circle disabled")


@router.post("/{child_id}/circles/revoke")
async def revoke_child_circle(
    child_id: str,
    body: CircleDisableRequest,
    parent_id: Annotated[str, Depends(require_parent)],
    circle_service: Annotated[CircleService, Depends(get_circle_service)],
    db=Depends(get_main_db),
):
    """Restore a circle previously disabled for the child."""
    circle = await revoke_circle_for_child(
        circle_service, db, parent_id, child_id, body.circleId, body.disableType
    )
    return success_response(format_circle(circle), message="Circle access restored")
