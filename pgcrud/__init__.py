from pgcrud.database import DatabasePool, DatabaseService
from pgcrud.query_builder import (
    Condition,
    ConditionGroup,
    ConditionOperator,
    LogicalOperator,
    Pagination,
    SortOrder,
    compile_conditions,
)
from pgcrud.storage import FileUploaderService, UploadFile, UploaderConfig

__all__ = [
    "Condition",
    "ConditionGroup",
    "ConditionOperator",
    "DatabasePool",
    "DatabaseService",
    "FileUploaderService",
    "LogicalOperator",
    "Pagination",
    "SortOrder",
    "UploadFile",
    "UploaderConfig",
    "compile_conditions",
]
