"""
Compile condition trees into parameterized PostgreSQL predicates.

A :class:`ConditionGroup` is flattened depth-first, left to right into a
clause that references its values through positional placeholders
(``$1``, ``$2``, ...). The running placeholder index is threaded through
the recursion by return value, so a predicate can be appended to a
statement that already consumed earlier placeholders (for example the SET
list of an UPDATE) by passing ``start_index``.

Field names and operators are written into the clause verbatim. Only
values are parameterized: callers must validate or allowlist field names
before compiling (see :func:`pgcrud.query_builder.builder.ensure_identifier`).

Degenerate input compiles to well-defined SQL:

* a group without children yields an empty clause and consumes no
  placeholder; an empty nested group is dropped from its parent;
* ``IN`` with an empty list yields ``FALSE``, which matches no row.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Iterator, NamedTuple, Tuple, Union

from .conditions import (
    Condition,
    ConditionError,
    ConditionGroup,
    ConditionOperator,
    LogicalOperator,
)


class CompiledPredicate(NamedTuple):
    """Clause text, the values its placeholders refer to, and the next free index."""

    clause: str
    parameters: Tuple[Any, ...]
    next_index: int

    @property
    def is_empty(self) -> bool:
        return not self.clause


def placeholder(index: int) -> str:
    """Return the positional placeholder for a 1-based parameter index."""
    return f"${index}"


def _check_start_index(start_index: int) -> None:
    if start_index < 1:
        raise ConditionError(f"Placeholder numbering starts at 1, got {start_index}")


def compile_condition(condition: Condition, start_index: int = 1) -> CompiledPredicate:
    """Compile a single condition."""
    _check_start_index(start_index)
    field = condition.field
    operator = ConditionOperator(condition.operator)

    if not operator.takes_value:
        return CompiledPredicate(f"{field} {operator}", (), start_index)

    if operator is ConditionOperator.IN:
        values = condition.value
        if isinstance(values, (str, bytes)) or not isinstance(values, Sequence):
            raise ConditionError(
                f"IN condition on '{field}' requires a list of values, got {type(values).__name__}"
            )
        if not values:
            return CompiledPredicate("FALSE", (), start_index)
        placeholders = ", ".join(
            placeholder(index) for index in range(start_index, start_index + len(values))
        )
        return CompiledPredicate(
            f"{field} IN ({placeholders})", tuple(values), start_index + len(values)
        )

    return CompiledPredicate(
        f"{field} {operator} {placeholder(start_index)}", (condition.value,), start_index + 1
    )


def compile_conditions(group: ConditionGroup, start_index: int = 1) -> CompiledPredicate:
    """
    Compile a condition tree into a predicate.

    Args:
        group: Root of the condition tree
        start_index: Placeholder index for the first value in the tree

    Returns:
        CompiledPredicate: clause text, parameters in placeholder order and
        the first placeholder index left unused

    Raises:
        ConditionError: If ``start_index`` is below 1 or an IN condition
            does not carry a list of values
    """
    _check_start_index(start_index)

    fragments = []
    parameters: list = []
    index = start_index

    for item in group.conditions:
        if isinstance(item, ConditionGroup):
            compiled = compile_conditions(item, index)
            if compiled.is_empty:
                continue
            fragments.append(f"({compiled.clause})")
        else:
            compiled = compile_condition(item, index)
            fragments.append(compiled.clause)
        parameters.extend(compiled.parameters)
        index = compiled.next_index

    logic = LogicalOperator(group.logic)
    return CompiledPredicate(f" {logic} ".join(fragments), tuple(parameters), index)


def equality_group(conditions: Mapping[str, Any]) -> ConditionGroup:
    """Convert a ``{column: value}`` mapping into an AND group of equality tests."""
    return ConditionGroup(
        logic=LogicalOperator.AND,
        conditions=[
            Condition(field=field, operator=ConditionOperator.EQUAL, value=value)
            for field, value in conditions.items()
        ],
    )


def compile_equalities(conditions: Mapping[str, Any], start_index: int = 1) -> CompiledPredicate:
    """Compile a ``{column: value}`` mapping as ``column = $n`` tests joined by AND."""
    return compile_conditions(equality_group(conditions), start_index)


def compile_where(
    where: Union[ConditionGroup, Mapping[str, Any], None], start_index: int = 1
) -> CompiledPredicate:
    """Compile either form of filter accepted by the statement builders."""
    if where is None:
        return CompiledPredicate("", (), start_index)
    if isinstance(where, ConditionGroup):
        return compile_conditions(where, start_index)
    return compile_equalities(where, start_index)


def condition_fields(group: ConditionGroup) -> Iterator[str]:
    """Yield every field referenced in a condition tree, depth-first."""
    for item in group.conditions:
        if isinstance(item, ConditionGroup):
            yield from condition_fields(item)
        else:
            yield item.field
