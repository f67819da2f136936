"""
Statement builders for the record access facade.

Each builder returns ``(sql, parameters)`` ready for
``asyncpg.Connection.fetch(sql, *parameters)``. Filters are compiled with
:mod:`pgcrud.query_builder.compiler`; statement-level values (INSERT
values, UPDATE SET values) take the leading placeholders and the
predicate numbering continues after them.

Table and column names are interpolated as given. Run them through
:func:`ensure_identifier` (the facade does) before building statements
from untrusted input.
"""

from collections.abc import Mapping, Sequence
from typing import Any, List, Optional, Tuple, Union

from pglast import ast, parse_sql
from pglast.parser import ParseError
from pglast.stream import RawStream

from .compiler import compile_where, placeholder
from .conditions import ConditionGroup, SortOrder

Where = Union[ConditionGroup, Mapping[str, Any], None]
Statement = Tuple[str, List[Any]]


class InvalidIdentifierError(ValueError):
    """Raised when a table or column name is not a plain identifier."""


def ensure_identifier(name: str, max_parts: int = 3) -> str:
    """
    Check that ``name`` is a plain, optionally qualified, identifier.

    The name is parsed by the PostgreSQL parser as a column reference and
    rendered back; anything that does not survive the round trip unchanged
    (expressions, comments, keywords, statement separators, ``*``) is
    rejected.

    Args:
        name: Identifier such as ``age``, ``public.users`` or ``"CamelCase"``
        max_parts: Maximum number of dotted parts

    Returns:
        str: The unchanged name

    Raises:
        InvalidIdentifierError: If the name is not a plain identifier
    """
    if not isinstance(name, str) or not name:
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")

    try:
        statements = parse_sql(f"SELECT {name}")
    except ParseError as e:
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}") from e

    if len(statements) != 1 or not isinstance(statements[0].stmt, ast.SelectStmt):
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")

    targets = statements[0].stmt.targetList or ()
    if len(targets) != 1:
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")

    ref = targets[0].val
    if (
        not isinstance(ref, ast.ColumnRef)
        or len(ref.fields) > max_parts
        or not all(isinstance(part, ast.String) for part in ref.fields)
    ):
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")

    if RawStream()(ref) != name:
        raise InvalidIdentifierError(f"Invalid identifier: {name!r}")

    return name


def _placeholders(start: int, count: int) -> str:
    return ", ".join(placeholder(index) for index in range(start, start + count))


def insert_statement(table: str, data: Mapping[str, Any]) -> Statement:
    """Build ``INSERT INTO t (cols) VALUES (...) RETURNING *``."""
    if not data:
        raise ValueError("No data provided for create operation")

    columns = ", ".join(data)
    sql = f"INSERT INTO {table} ({columns}) VALUES ({_placeholders(1, len(data))}) RETURNING *"
    return sql, list(data.values())


def bulk_insert_statement(table: str, rows: Sequence[Mapping[str, Any]]) -> Statement:
    """
    Build a multi-row INSERT.

    Columns are taken from the first row; every row must provide exactly
    those columns.
    """
    if not rows:
        raise ValueError("No data provided for bulk create operation")

    columns = list(rows[0])
    if not columns:
        raise ValueError("No columns provided for bulk create operation")

    values_lists = []
    parameters: List[Any] = []
    for row_number, row in enumerate(rows):
        missing = [column for column in columns if column not in row]
        if missing:
            raise ValueError(f"Missing value for column '{missing[0]}' in row {row_number}")
        unexpected = [column for column in row if column not in columns]
        if unexpected:
            raise ValueError(f"Unexpected column '{unexpected[0]}' in row {row_number}")

        values_lists.append(f"({_placeholders(len(parameters) + 1, len(columns))})")
        parameters.extend(row[column] for column in columns)

    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES {', '.join(values_lists)} RETURNING *"
    return sql, parameters


def select_statement(
    table: str,
    where: Where = None,
    sort: Optional[Mapping[str, Union[SortOrder, str]]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
) -> Statement:
    """
    Build ``SELECT * FROM t`` with optional WHERE, ORDER BY, LIMIT and OFFSET.

    An empty filter means no WHERE clause.
    """
    sql = f"SELECT * FROM {table}"

    predicate = compile_where(where)
    if not predicate.is_empty:
        sql += f" WHERE {predicate.clause}"

    if sort:
        sort_clauses = ", ".join(f"{field} {SortOrder(order)}" for field, order in sort.items())
        sql += f" ORDER BY {sort_clauses}"

    if limit is not None:
        sql += f" LIMIT {int(limit)}"
    if offset is not None:
        sql += f" OFFSET {int(offset)}"

    return sql, list(predicate.parameters)


def select_by_id_statement(table: str, record_id: Any) -> Statement:
    """Build ``SELECT * FROM t WHERE id = $1``."""
    return select_statement(table, {"id": record_id})


def count_statement(table: str, where: Where = None) -> Statement:
    """Build ``SELECT COUNT(*) FROM t`` with an optional WHERE clause."""
    sql = f"SELECT COUNT(*) FROM {table}"

    predicate = compile_where(where)
    if not predicate.is_empty:
        sql += f" WHERE {predicate.clause}"

    return sql, list(predicate.parameters)


def update_statement(table: str, data: Mapping[str, Any], where: Where) -> Statement:
    """
    Build ``UPDATE t SET ... WHERE <predicate> RETURNING *``.

    SET values occupy ``$1..$n``; the predicate is numbered from ``$n+1``.

    Raises:
        ValueError: If ``data`` is empty or the predicate is empty, which
            would update every row
    """
    if not data:
        raise ValueError("No data provided for update operation")

    set_clauses = ", ".join(
        f"{column} = {placeholder(index)}" for index, column in enumerate(data, start=1)
    )
    parameters = list(data.values())

    predicate = compile_where(where, len(parameters) + 1)
    if predicate.is_empty:
        raise ValueError(f"Refusing to update {table} without conditions")

    sql = f"UPDATE {table} SET {set_clauses} WHERE {predicate.clause} RETURNING *"
    return sql, parameters + list(predicate.parameters)


def update_by_id_statement(table: str, record_id: Any, data: Mapping[str, Any]) -> Statement:
    """Build ``UPDATE t SET ... WHERE id = $n RETURNING *``."""
    return update_statement(table, data, {"id": record_id})


def delete_statement(table: str, where: Where) -> Statement:
    """
    Build ``DELETE FROM t WHERE <predicate> RETURNING *``.

    Raises:
        ValueError: If the predicate is empty, which would delete every row
    """
    predicate = compile_where(where)
    if predicate.is_empty:
        raise ValueError(f"Refusing to delete from {table} without conditions")

    return f"DELETE FROM {table} WHERE {predicate.clause} RETURNING *", list(predicate.parameters)


def delete_by_id_statement(table: str, record_id: Any) -> Statement:
    """Build ``DELETE FROM t WHERE id = $1 RETURNING *``."""
    return delete_statement(table, {"id": record_id})
