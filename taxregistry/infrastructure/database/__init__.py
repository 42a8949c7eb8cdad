"""Database access with SQLAlchemy 2.0 async sessions.

Core components:
- **base**: Declarative base and common model fields
- **models**: Taxpayer record and income ledger tables
- **session**: The ``Database`` handle owning engine and session factory
- **repository**: Generic repository with storage error translation
- **store**: The taxpayer record store
- **query**: Search, filters and summary statistics
- **dependencies**: FastAPI dependency injection helpers
"""

from taxregistry.infrastructure.database.base import Base, BaseModel
from taxregistry.infrastructure.database.dependencies import DatabaseSession, get_db
from taxregistry.infrastructure.database.models import LedgerEntry, TaxpayerRecord
from taxregistry.infrastructure.database.repository import BaseRepository
from taxregistry.infrastructure.database.session import (
    Database,
    create_database_engine,
)
from taxregistry.infrastructure.database.store import TaxpayerStore

__all__ = [
    "Base",
    "BaseModel",
    "BaseRepository",
    "Database",
    "DatabaseSession",
    "LedgerEntry",
    "TaxpayerRecord",
    "TaxpayerStore",
    "create_database_engine",
    "get_db",
]
