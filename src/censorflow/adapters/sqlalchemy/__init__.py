"""SQLAlchemy adapter package for censorflow."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    ReviewRepositories,
    SqlAlchemyBindingRepository,
    SqlAlchemyProviderTaskRepository,
    SqlAlchemyReviewRepository,
    SqlAlchemyViolationRepository,
)
from .store import SqlAlchemyStore
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "ReviewRepositories",
    "SqlAlchemyBindingRepository",
    "SqlAlchemyProviderTaskRepository",
    "SqlAlchemyReviewRepository",
    "SqlAlchemyStore",
    "SqlAlchemyUnitOfWork",
    "SqlAlchemyViolationRepository",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
