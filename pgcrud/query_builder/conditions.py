"""
Models describing filter trees, sort options and pagination.
"""
import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Dict, List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field


QueryValue = Union[
    bool, int, float, Decimal, str, datetime.datetime, datetime.date, datetime.time, UUID, None
]


class ConditionError(ValueError):
    """Raised when a condition tree cannot be compiled."""


class ConditionOperator(StrEnum):
    EQUAL = "="
    NOT_EQUAL = "!="
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="
    LIKE = "LIKE"
    IN = "IN"
    IS_NULL = "IS NULL"
    IS_NOT_NULL = "IS NOT NULL"

    @property
    def takes_value(self) -> bool:
        return self not in (ConditionOperator.IS_NULL, ConditionOperator.IS_NOT_NULL)


class LogicalOperator(StrEnum):
    AND = "AND"
    OR = "OR"


class SortOrder(StrEnum):
    ASC = "ASC"
    DESC = "DESC"


SortOptions = Dict[str, SortOrder]


class Condition(BaseModel):
    """A single ``field operator value`` predicate."""
    model_config = {"extra": "forbid"}

    field: str = Field(..., description="Column the predicate applies to")
    operator: ConditionOperator = Field(..., description="Comparison operator")
    value: Union[QueryValue, List[QueryValue]] = Field(
        None, description="Value to compare with; a list for IN, ignored for null tests"
    )


class ConditionGroup(BaseModel):
    """Conditions and nested groups combined with a single logical operator."""
    model_config = {"extra": "forbid"}

    logic: LogicalOperator = Field(LogicalOperator.AND, description="How children are combined")
    conditions: List[Union[Condition, "ConditionGroup"]] = Field(
        default_factory=list, description="Child conditions, evaluated left to right"
    )

    @property
    def is_empty(self) -> bool:
        return not self.conditions


ConditionGroup.model_rebuild()


class Pagination(BaseModel):
    """Page-number based pagination."""
    page: int = Field(1, ge=1, description="1-based page number")
    limit: int = Field(10, ge=1, description="Maximum number of rows per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PageInfo(BaseModel):
    """Pagination metadata returned with a page of records."""
    page: int
    limit: int
    total_items: int
    total_pages: int


def where(*conditions: Union[Condition, ConditionGroup], logic: LogicalOperator = LogicalOperator.AND) -> ConditionGroup:
    """Shorthand for building a ConditionGroup."""
    return ConditionGroup(logic=logic, conditions=list(conditions))


def cond(field: str, operator: Union[ConditionOperator, str], value: Optional[Union[QueryValue, List[QueryValue]]] = None) -> Condition:
    """Shorthand for building a Condition."""
    return Condition(field=field, operator=ConditionOperator(operator), value=value)
