"""
Authentication module - Bearer token provider and FastAPI dependencies.
"""

from common.auth.base import AuthProvider
from common.auth.jwt_auth import JWTAuth
from common.auth.dependencies import create_auth_dependency, create_role_dependency

__all__ = ["AuthProvider", "JWTAuth", "create_auth_dependency", "create_role_dependency"]
