"""
FastAPI dependencies for Circlenet.

Provides dependency injection for services and authentication.
"""

from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from common.auth import JWTAuth, create_auth_dependency, create_role_dependency
from circlenet.config import Settings
from circlenet.services.circles.circle_service import CircleService
from circlenet.services.circles.invitation_service import CircleInvitationService
from circlenet.services.connections.connection_service import ConnectionService


_main_db: Optional[AsyncIOMotorDatabase] = None
_auth_provider: Optional[JWTAuth] = None
_circle_service: Optional[CircleService] = None
_invitation_service: Optional[CircleInvitationService] = None
_connection_service: Optional[ConnectionService] = None


def init_services(db: AsyncIOMotorDatabase, settings: Settings) -> None:
    """
    Initialize all services with database connection.

    Called once at application startup.

    Args:
        db: MongoDB database connection
        settings: Application settings
    """
    global _main_db, _auth_provider
    global _circle_service, _invitation_service, _connection_service

    _main_db = db
    _auth_provider = JWTAuth(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALGORITHM,
        access_token_expire_minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES,
    )

    _circle_service = CircleService(
        db=db,
        name_max_length=settings.CIRCLE_NAME_MAX_LENGTH,
        default_color=settings.DEFAULT_CIRCLE_COLOR,
        default_icon=settings.DEFAULT_CIRCLE_ICON,
    )
    list_limit = settings.LIST_QUERY_LIMIT
    _invitation_service = CircleInvitationService(
        db=db,
        circle_service=_circle_service,
        list_limit=list_limit,
    )
    _connection_service = ConnectionService(db=db, list_limit=list_limit)


def get_main_db() -> AsyncIOMotorDatabase:
    """Get main database instance."""
    if _main_db is None:
        raise RuntimeError("Main database not initialized.")
    return _main_db


def get_auth_provider() -> JWTAuth:
    """Get auth provider instance."""
    if _auth_provider is None:
        raise RuntimeError("Auth provider not initialized.")
    return _auth_provider


def get_circle_service() -> CircleService:
    """Get circle service instance."""
    if _circle_service is None:
        raise RuntimeError("Circle services not initialized.")
    return _circle_service


def get_invitation_service() -> CircleInvitationService:
    """Get circle invitation service instance."""
    if _invitation_service is None:
        raise RuntimeError("Circle services not initialized.")
    return _invitation_service


def get_connection_service() -> ConnectionService:
    """Get connection service instance."""
    if _connection_service is None:
        raise RuntimeError("Connection services not initialized.")
    return _connection_service


# Returns the caller's user id
require_auth = create_auth_dependency(get_auth_provider)

# Returns the caller's user id when the token carries role=parent
require_parent = create_role_dependency(get_auth_provider, "parent")
