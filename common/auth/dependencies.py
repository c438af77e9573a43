"""
FastAPI authentication dependencies.

Provides factory functions to create auth dependencies that can be
injected into route handlers. Works with any AuthProvider implementation.

Example:
    from common.auth import JWTAuth, create_auth_dependency

    auth = JWTAuth(secret="your-secret")
    get_current_user_id = create_auth_dependency(lambda: auth)

    @router.get("/connections")
    async def list_connections(user_id: str = Depends(get_current_user_id)):
        ...
"""

from typing import Any, Callable, Dict, Optional
from fastapi import Header, HTTPException

from common.auth.base import AuthProvider


async def _verify_authorization(
    authorization: Optional[str],
    auth: AuthProvider,
    scheme: str,
) -> Dict[str, Any]:
    """
    Extract the bearer token from the header and return its verified claims.

    Raises:
        HTTPException 401: If token is missing, malformed, invalid, or expired
    """
    if not authorization:
        raise HTTPException(
            status_code=401,
            detail={"message": "Missing authorization header", "code": "UNAUTHORIZED"},
        )

    prefix = f"{scheme} "
    if not authorization.startswith(prefix):
        raise HTTPException(
            status_code=401,
            detail={
                "message": f"Invalid authorization scheme. Expected: {scheme}",
                "code": "INVALID_AUTH_SCHEME",
            },
        )

    token = authorization[len(prefix) :]

    if not token:
        raise HTTPException(
            status_code=401,
            detail={"message": "Token is empty", "code": "EMPTY_TOKEN"},
        )

    try:
        payload = await auth.verify_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=401,
            detail={"message": str(e), "code": "INVALID_TOKEN"},
        )

    if not (payload.get("sub") or payload.get("uid")):
        raise HTTPException(
            status_code=401,
            detail={"message": "Token missing user ID", "code": "INVALID_TOKEN"},
        )

    return payload


def create_auth_dependency(
    get_auth_provider: Callable[[], AuthProvider],
    header_name: str = "Authorization",
    scheme: str = "Bearer",
):
    """
    Factory to create FastAPI auth dependencies.

    Args:
        get_auth_provider: Callable that returns the AuthProvider instance
        header_name: Header to extract token from (default: Authorization)
        scheme: Auth scheme prefix (default: Bearer)

    Returns:
        A FastAPI dependency function that extracts and verifies the user ID
    """

    async def get_current_user_id(
        authorization: Optional[str] = Header(None, alias=header_name),
    ) -> str:
        payload = await _verify_authorization(authorization, get_auth_provider(), scheme)
        return payload.get("sub") or payload.get("uid")

    return get_current_user_id


def create_role_dependency(
    get_auth_provider: Callable[[], AuthProvider],
    role: str,
    header_name: str = "Authorization",
    scheme: str = "Bearer",
):
    """
    Factory to create a role-gated auth dependency.

    Verifies authentication and that the token's ``role`` claim matches.

    Args:
        get_auth_provider: Callable that returns the AuthProvider instance
        role: Required value of the ``role`` claim (e.g. "parent")
        header_name: Header to extract token from
        scheme: Auth scheme prefix

    Returns:
        A FastAPI dependency that returns user_id for callers with the role
    """

    async def get_role_user_id(
        authorization: Optional[str] = Header(None, alias=header_name),
    ) -> str:
        """
        Raises:
            HTTPException 401: If not authenticated
            HTTPException 403: If the role claim does not match
        """
        payload = await _verify_authorization(authorization, get_auth_provider(), scheme)

        if payload.get("role") != role:
            raise HTTPException(
                status_code=403,
                detail={"message": f"{role.capitalize()} access required", "code": "FORBIDDEN"},
            )

        return payload.get("sub") or payload.get("uid")

    return get_role_user_id
