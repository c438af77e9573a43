"""Circlenet database setup."""

from circlenet.database.indexes import CIRCLENET_INDEXES, create_indexes

__all__ = ["CIRCLENET_INDEXES", "create_indexes"]
