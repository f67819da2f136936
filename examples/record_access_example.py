"""
Example usage of the record access facade.

Statements are printed without a database. Set POSTGRES_CONNECTION_STRING
to also run them against a ``users`` table.
"""

import asyncio
import os

from pgcrud import DatabasePool, DatabaseService
from pgcrud.logging_config import setup_logging
from pgcrud.query_builder import (
    ConditionGroup,
    Pagination,
    compile_conditions,
    cond,
    select_statement,
    update_statement,
    where,
)


def nested_filter() -> ConditionGroup:
    """(status = 'active' AND age >= 18) OR (department = 'IT' AND experience >= 5)"""
    return where(
        where(cond("status", "=", "active"), cond("age", ">=", 18)),
        where(cond("department", "=", "IT"), cond("experience", ">=", 5)),
        logic="OR",
    )


def show_compiled_statements():
    """Print the SQL and parameters produced for a few filters."""
    print("=== Compiled predicates ===\n")

    compiled = compile_conditions(nested_filter())
    print(f"Clause: {compiled.clause}")
    print(f"Parameters: {list(compiled.parameters)}")
    print(f"Next placeholder: ${compiled.next_index}\n")

    # Parsed from a request body
    payload = {
        "logic": "AND",
        "conditions": [
            {"field": "role", "operator": "IN", "value": ["admin", "manager"]},
            {"field": "deleted_at", "operator": "IS NULL"},
        ],
    }
    sql, params = select_statement("users", ConditionGroup.model_validate(payload), sort={"name": "ASC"})
    print(f"SQL: {sql}")
    print(f"Parameters: {params}\n")

    # SET values take $1; the predicate continues at $2
    sql, params = update_statement("users", {"status": "archived"}, nested_filter())
    print(f"SQL: {sql}")
    print(f"Parameters: {params}\n")

    # User input never reaches the SQL text
    sql, params = select_statement("users", {"name": "admin'; DROP TABLE users; --"})
    print(f"SQL: {sql}")
    print(f"Parameters: {params}")


async def run_against_database(dsn: str):
    async with DatabasePool(dsn) as pool:
        users = DatabaseService("users", pool)

        page = await users.find_all_with_pagination(
            Pagination(page=1, limit=5), where=nested_filter(), sort={"name": "ASC"}
        )
        print(f"\nPage 1 of {page.pagination.total_pages} ({page.pagination.total_items} users)")
        for row in page.data.rows:
            print(f"  {row}")


if __name__ == "__main__":
    setup_logging()
    show_compiled_statements()

    dsn = os.getenv("POSTGRES_CONNECTION_STRING")
    if dsn:
        asyncio.run(run_against_database(dsn))
