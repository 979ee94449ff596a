"""
Database component - named tables of keyed JSON records.

Handles insert, update, upsert, get, filtered list and delete.
"""

from ._impl import InMemoryTableStore
from .component import (
    DUPLICATE_KEY,
    NOT_FOUND,
    NOT_SERIALIZABLE,
    InvalidRecordError,
    normalize_record,
    run_delete,
    run_get,
    run_insert,
    run_list,
    run_update,
    run_upsert,
)
from .filters import SUPPORTED_OPERATORS
from .models import (
    DeleteInput,
    Filter,
    FilterOperator,
    GetInput,
    InsertInput,
    ListInput,
    RecordListOutput,
    RecordOutput,
    UpdateInput,
    UpsertInput,
)
from .ports import IdGeneratorPort, TableStorePort, TimePort

__all__ = [
    # Entry points
    "run_insert",
    "run_update",
    "run_upsert",
    "run_get",
    "run_list",
    "run_delete",
    "normalize_record",
    # Errors
    "InvalidRecordError",
    "DUPLICATE_KEY",
    "NOT_FOUND",
    "NOT_SERIALIZABLE",
    # Models
    "DeleteInput",
    "Filter",
    "FilterOperator",
    "GetInput",
    "InsertInput",
    "ListInput",
    "RecordListOutput",
    "RecordOutput",
    "UpdateInput",
    "UpsertInput",
    "SUPPORTED_OPERATORS",
    # Ports
    "IdGeneratorPort",
    "TableStorePort",
    "TimePort",
    # Adapters
    "InMemoryTableStore",
]
