"""
Result containers returned by the record access facade.
"""

from typing import Any, Dict, List, Optional, TypeVar, Generic

from .conditions import PageInfo

T = TypeVar("T")


class QueryResult(Generic[T]):
    """Result container for executed queries."""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        sql: str,
        parameters: List[Any],
        row_count: int,
        model_class: Optional[type] = None,
    ):
        self.rows = rows
        self.sql = sql
        self.parameters = parameters
        self.row_count = row_count
        self.model_class = model_class

    def to_models(self) -> List[T]:
        """Convert rows to Pydantic models if model_class is provided."""
        if not self.model_class:
            raise ValueError("No model class specified for conversion")
        return [self.model_class(**row) for row in self.rows]

    def to_dicts(self) -> List[Dict[str, Any]]:
        """Return rows as dictionaries."""
        return self.rows

    def first(self) -> Optional[Dict[str, Any]]:
        """Get the first row or None."""
        return self.rows[0] if self.rows else None

    def first_model(self) -> Optional[T]:
        """Get the first row as a model or None."""
        if not self.rows or not self.model_class:
            return None
        return self.model_class(**self.rows[0])

    def __len__(self) -> int:
        return self.row_count

    def __repr__(self) -> str:
        return f"QueryResult(sql='{self.sql}', params={self.parameters}, row_count={self.row_count})"


class PaginatedResult(Generic[T]):
    """One page of records together with its pagination metadata."""

    def __init__(self, data: QueryResult[T], pagination: PageInfo):
        self.data = data
        self.pagination = pagination

    @property
    def has_next(self) -> bool:
        return self.pagination.page < self.pagination.total_pages
