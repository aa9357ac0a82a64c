"""Database infrastructure module."""

from approvalflow.infrastructure.database.session import (
    create_async_db_engine,
    create_session_factory,
    init_database,
)

__all__ = [
    "create_async_db_engine",
    "create_session_factory",
    "init_database",
]
