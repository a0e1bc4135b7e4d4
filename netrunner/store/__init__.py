"""
Store adapters.

- `EngineStore` / `EngineTransaction`: the persistence protocol
- `InMemoryStore`: process-memory implementation
- `SqlAlchemyStore`: PostgreSQL implementation (import from
  `netrunner.store.sqlalchemy_store`)
"""

from .base import EngineStore, EngineTransaction, require_baseline, require_character, require_pools
from .memory import InMemoryStore, InMemoryTransaction

__all__ = [
    "EngineStore",
    "EngineTransaction",
    "InMemoryStore",
    "InMemoryTransaction",
    "require_baseline",
    "require_character",
    "require_pools",
]
