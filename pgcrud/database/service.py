"""
Record access facade over a single table.

``DatabaseService`` maps create/read/update/delete/paginate calls onto the
statement builders and runs them on a pooled asyncpg connection. Table and
column names are validated before any SQL is built; values always travel
as bind parameters.
"""

import math
from collections.abc import Iterable, Mapping, Sequence
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional, Union

import asyncpg

from pgcrud.database.pool import DatabasePool
from pgcrud.logging_config import get_logger, log_performance
from pgcrud.query_builder.builder import (
    InvalidIdentifierError,
    Where,
    bulk_insert_statement,
    count_statement,
    delete_by_id_statement,
    delete_statement,
    ensure_identifier,
    insert_statement,
    select_by_id_statement,
    select_statement,
    update_by_id_statement,
    update_statement,
)
from pgcrud.query_builder.compiler import condition_fields
from pgcrud.query_builder.conditions import ConditionGroup, PageInfo, Pagination, SortOrder
from pgcrud.query_builder.types import PaginatedResult, QueryResult

logger = get_logger(__name__)

RecordId = Union[int, str]
SortSpec = Mapping[str, Union[SortOrder, str]]


class DatabaseService:
    """
    CRUD operations against one table.

    Args:
        table_name: Table to operate on, optionally schema-qualified
        pool: Opened database pool shared by all services
        allowed_columns: Optional allowlist; when given, every referenced
            column must be in it
        model_class: Optional Pydantic model attached to every result
    """

    def __init__(
        self,
        table_name: str,
        pool: DatabasePool,
        allowed_columns: Optional[Iterable[str]] = None,
        model_class: Optional[type] = None,
        connection: Optional[asyncpg.Connection] = None,
    ):
        self.table_name = ensure_identifier(table_name, max_parts=2)
        self.pool = pool
        self.allowed_columns = frozenset(allowed_columns) if allowed_columns is not None else None
        self.model_class = model_class
        self._connection = connection

    def with_connection(self, connection: asyncpg.Connection) -> "DatabaseService":
        """Return a service bound to ``connection``, e.g. inside a caller-managed transaction."""
        return DatabaseService(
            self.table_name,
            self.pool,
            allowed_columns=self.allowed_columns,
            model_class=self.model_class,
            connection=connection,
        )

    # Validation

    def _check_column(self, name: str) -> None:
        ensure_identifier(name)
        if self.allowed_columns is not None and name not in self.allowed_columns:
            raise InvalidIdentifierError(f"Column '{name}' is not allowed on {self.table_name}")

    def _check_columns(self, names: Iterable[str]) -> None:
        for name in names:
            self._check_column(name)

    def _check_where(self, where: Where) -> None:
        if where is None:
            return
        if isinstance(where, ConditionGroup):
            self._check_columns(condition_fields(where))
        else:
            self._check_columns(where)

    @staticmethod
    def _resolve_filter(conditions: Optional[Mapping[str, Any]], where: Optional[ConditionGroup]) -> Where:
        """Nested conditions win over the legacy equality mapping when present."""
        if where is not None and not where.is_empty:
            return where
        return conditions or None

    # Execution

    @asynccontextmanager
    async def _connection_scope(self) -> AsyncIterator[asyncpg.Connection]:
        if self._connection is not None:
            yield self._connection
        else:
            async with self.pool.acquire() as connection:
                yield connection

    def _result(self, rows: Sequence[Any], sql: str, parameters: Sequence[Any]) -> QueryResult:
        dict_rows = [dict(row) for row in rows]
        logger.debug("Query result rows: %d", len(dict_rows))
        return QueryResult(
            rows=dict_rows,
            sql=sql,
            parameters=list(parameters),
            row_count=len(dict_rows),
            model_class=self.model_class,
        )

    async def _query(self, sql: str, parameters: Sequence[Any] = ()) -> QueryResult:
        logger.debug("Executing query: %s", sql)
        logger.debug("Query parameters: %s", parameters)
        try:
            async with self._connection_scope() as connection:
                rows = await connection.fetch(sql, *parameters)
        except Exception as e:
            logger.error("Database query error: %s", e)
            raise
        return self._result(rows, sql, parameters)

    # Create

    async def create(self, data: Mapping[str, Any]) -> QueryResult:
        """Insert one record and return it."""
        self._check_columns(data)
        return await self._query(*insert_statement(self.table_name, data))

    @log_performance(logger, "bulk create")
    async def bulk_create(self, rows: Sequence[Mapping[str, Any]]) -> QueryResult:
        """Insert several records in a single transaction and return them."""
        sql, parameters = bulk_insert_statement(self.table_name, rows)
        self._check_columns(rows[0])

        logger.debug("Executing query: %s", sql)
        async with self._connection_scope() as connection:
            try:
                async with connection.transaction():
                    records = await connection.fetch(sql, *parameters)
            except Exception as e:
                logger.error("Bulk create operation failed: %s", e)
                raise
        return self._result(records, sql, parameters)

    # Read

    async def find_by_id(self, record_id: RecordId) -> QueryResult:
        return await self._query(*select_by_id_statement(self.table_name, record_id))

    async def find_all(self, conditions: Optional[Mapping[str, Any]] = None) -> QueryResult:
        """Return all records, optionally filtered by ``column = value`` tests."""
        self._check_where(conditions)
        return await self._query(*select_statement(self.table_name, conditions or None))

    async def find_all_custom(
        self,
        conditions: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        where: Optional[ConditionGroup] = None,
    ) -> QueryResult:
        """
        Return records filtered by a condition tree and sorted.

        Args:
            conditions: Legacy ``{column: value}`` equality filter, used
                only when ``where`` is empty
            sort: Ordered ``{column: ASC|DESC}`` mapping
            where: Nested condition tree
        """
        filter_ = self._resolve_filter(conditions, where)
        self._check_where(filter_)
        self._check_columns(sort or ())
        return await self._query(*select_statement(self.table_name, filter_, sort))

    @log_performance(logger, "paginated find")
    async def find_all_with_pagination(
        self,
        pagination: Union[Pagination, Mapping[str, int]],
        conditions: Optional[Mapping[str, Any]] = None,
        sort: Optional[SortSpec] = None,
        where: Optional[ConditionGroup] = None,
    ) -> PaginatedResult:
        """
        Return one page of records plus the total count of matching records.

        The count and the page are built from the same filter.
        """
        pagination = Pagination.model_validate(pagination)
        filter_ = self._resolve_filter(conditions, where)
        self._check_where(filter_)
        self._check_columns(sort or ())

        count_result = await self._query(*count_statement(self.table_name, filter_))
        total_items = int(count_result.first()["count"])

        data = await self._query(
            *select_statement(
                self.table_name,
                filter_,
                sort,
                limit=pagination.limit,
                offset=pagination.offset,
            )
        )

        return PaginatedResult(
            data=data,
            pagination=PageInfo(
                page=pagination.page,
                limit=pagination.limit,
                total_items=total_items,
                total_pages=math.ceil(total_items / pagination.limit),
            ),
        )

    # Update

    async def update(self, record_id: RecordId, data: Mapping[str, Any]) -> QueryResult:
        self._check_columns(data)
        return await self._query(*update_by_id_statement(self.table_name, record_id, data))

    async def bulk_update(self, where: Union[ConditionGroup, Mapping[str, Any]], data: Mapping[str, Any]) -> QueryResult:
        """Update every record matching ``where``; an empty filter is rejected."""
        self._check_columns(data)
        self._check_where(where)
        return await self._query(*update_statement(self.table_name, data, where))

    # Delete

    async def delete(self, record_id: RecordId) -> QueryResult:
        return await self._query(*delete_by_id_statement(self.table_name, record_id))

    async def bulk_delete(self, where: Union[ConditionGroup, Mapping[str, Any]]) -> QueryResult:
        """Delete every record matching ``where``; an empty filter is rejected."""
        self._check_where(where)
        return await self._query(*delete_statement(self.table_name, where))

    # Raw SQL

    async def execute_query(self, sql: str, params: Sequence[Any] = ()) -> QueryResult:
        """Run caller-supplied SQL with bind parameters."""
        return await self._query(sql, params)
