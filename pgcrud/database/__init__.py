from pgcrud.database.pool import DatabasePool, PoolNotInitializedError
from pgcrud.database.service import DatabaseService

__all__ = [
    "DatabasePool",
    "DatabaseService",
    "PoolNotInitializedError",
]
