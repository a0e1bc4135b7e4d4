from netrunner.core.database.base import Base, IdMixin, TimestampMixin
from netrunner.core.database.service import DatabaseService

__all__ = ["Base", "IdMixin", "TimestampMixin", "DatabaseService"]
