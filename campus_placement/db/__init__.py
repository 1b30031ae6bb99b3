"""
Database module - relational store engine, sessions and schema.
"""
from campus_placement.db.database import (
    configure_engine,
    get_db_session,
    init_schema,
    test_database_connection,
)

__all__ = [
    "configure_engine",
    "get_db_session",
    "init_schema",
    "test_database_connection",
]
