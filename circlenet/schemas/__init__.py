"""
Circlenet Schemas.

Pydantic models for request validation.
"""

from circlenet.schemas.circles import *
from circlenet.schemas.connections import *
from circlenet.schemas.guardian import *
