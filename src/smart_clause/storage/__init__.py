"""Storage implementations for documents, analyses and conversations."""

from .database import DatabaseManager, get_database_url
from .memory import InMemoryRepository
from .models import Base
from .sql_repository import SqlAlchemyRepository

__all__ = [
    "DatabaseManager",
    "get_database_url",
    "InMemoryRepository",
    "Base",
    "SqlAlchemyRepository",
]
