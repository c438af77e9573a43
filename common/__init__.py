"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection with Beanie ODM
- auth: Bearer token verification (JWT)
- utils: Standard responses and HTTP exceptions
- config: Base settings class
"""

from common.database import MongoDB
from common.auth import AuthProvider, JWTAuth, create_auth_dependency
from common.utils import (
    success_response,
    APIException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InvalidStateException,
    ValidationException,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Auth
    "AuthProvider",
    "JWTAuth",
    "create_auth_dependency",
    # Utils
    "success_response",
    "APIException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "InvalidStateException",
    "ValidationException",
    # Config
    "BaseAppSettings",
]
