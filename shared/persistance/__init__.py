"""
Persistance package - Database connections and repositories.
"""
from shared.persistance.mongo_db import mongo_pool, ensure_indexes

__all__ = ["mongo_pool", "ensure_indexes"]
