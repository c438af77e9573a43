"""
FastAPI router for connection endpoints.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from circlenet.dependencies import require_auth, get_connection_service
from circlenet.routers.formatters import format_connection_request
from circlenet.schemas.connections import SendConnectionRequest, RespondConnectionRequest
from circlenet.services.connections.connection_service import ConnectionService
from common.utils import success_response, list_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])


@router.get("")
async def list_connections(
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Get ids of users connected to the caller."""
    connected_ids = await connection_service.get_connected_user_ids(user_id)
    return list_response(connected_ids)


@router.post("/request")
async def send_request(
    body: SendConnectionRequest,
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Send a connection request."""
    request = await connection_service.send_connection_request(
        sender_id=user_id,
        receiver_id=body.receiverId,
        message=body.message,
    )

    return success_response(format_connection_request(request), message="Connection request sent")


@router.get("/requests")
async def list_requests(
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
    type: str = Query("received", description="received | sent"),
):
    """Get connection requests received or sent by the caller."""
    requests = await connection_service.get_requests_for_user(user_id, direction=type)
    return list_response([format_connection_request(r) for r in requests])


@router.put("/requests/{request_id}")
async def respond_to_request(
    request_id: str,
    body: RespondConnectionRequest,
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Accept or decline a connection request."""
    request = await connection_service.respond_to_connection_request(
        request_id=request_id,
        acting_user_id=user_id,
        action=body.action,
    )

    return success_response(
        format_connection_request(request),
        message=f"Connection request {request['status']}",
    )


@router.get("/status/{other_user_id}")
async def get_status(
    other_user_id: str,
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Get the relationship status between the caller and another user."""
    status = await connection_service.get_relationship_status(user_id, other_user_id)
    return success_response({"userId": other_user_id, "status": status.value})


@router.delete("/{other_user_id}")
async def remove_connection(
    other_user_id: str,
    user_id: Annotated[str, Depends(require_auth)],
    connection_service: Annotated[ConnectionService, Depends(get_connection_service)],
):
    """Remove the connection between the caller and another user."""
    result = await connection_service.remove_connection(user_id, other_user_id)
    return success_response(message=result["message"])
