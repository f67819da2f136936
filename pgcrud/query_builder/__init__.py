from pgcrud.query_builder.builder import (
    InvalidIdentifierError,
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
from pgcrud.query_builder.compiler import (
    CompiledPredicate,
    compile_condition,
    compile_conditions,
    compile_equalities,
    condition_fields,
)
from pgcrud.query_builder.conditions import (
    Condition,
    ConditionError,
    ConditionGroup,
    ConditionOperator,
    LogicalOperator,
    PageInfo,
    Pagination,
    SortOrder,
    cond,
    where,
)
from pgcrud.query_builder.types import PaginatedResult, QueryResult

__all__ = [
    "CompiledPredicate",
    "Condition",
    "ConditionError",
    "ConditionGroup",
    "ConditionOperator",
    "InvalidIdentifierError",
    "LogicalOperator",
    "PageInfo",
    "PaginatedResult",
    "Pagination",
    "QueryResult",
    "SortOrder",
    "bulk_insert_statement",
    "compile_condition",
    "compile_conditions",
    "compile_equalities",
    "cond",
    "condition_fields",
    "count_statement",
    "delete_by_id_statement",
    "delete_statement",
    "ensure_identifier",
    "insert_statement",
    "select_by_id_statement",
    "select_statement",
    "update_by_id_statement",
    "update_statement",
    "where",
]
