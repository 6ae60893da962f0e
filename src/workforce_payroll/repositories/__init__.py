"""Repository contracts and their in-memory and SQLAlchemy implementations."""

from workforce_payroll.repositories.base import (
    MAX_WRITE_CHUNK,
    RepositoryBundle,
    approval_view,
    chunked,
)
from workforce_payroll.repositories.memory import create_memory_repositories
from workforce_payroll.repositories.sql import create_sql_repositories

__all__ = [
    "MAX_WRITE_CHUNK",
    "RepositoryBundle",
    "approval_view",
    "chunked",
    "create_memory_repositories",
    "create_sql_repositories",
]
