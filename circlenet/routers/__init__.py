"""
Circlenet API Routers.
"""

from circlenet.routers.circles import router as circles_router
from circlenet.routers.connections import router as connections_router
from circlenet.routers.guardian import router as guardian_router

__all__ = [
    "circles_router",
    "connections_router",
    "guardian_router",
]
