"""
Database module - Generic async MongoDB connection using Beanie ODM.

Usage:
    from common.database import MongoDB, set_main_database, get_main_database

    db = MongoDB()
    await db.connect(uri, database_name, [])
    set_main_database(db)

    collection = get_main_database().get_collection("circlebadges")
"""

from common.database.mongodb import (
    MongoDB,
    set_main_database,
    get_main_database,
)

__all__ = [
    "MongoDB",
    "set_main_database",
    "get_main_database",
]
