"""
Database component - keyed records in named tables.

A deliberately small relational-like store: every table maps record id to a
JSON-compatible dict. There are no indexes beyond the id, no joins and no
cross-table transactions.

Invariants:
- Record ids are unique within a table
- Tables are created lazily by the first write
- Stored rows are JSON-normalized copies; callers never hold a reference
  into the store
- A multi-row insert either stores every row or none
"""

from __future__ import annotations

import copy
import json

from mockbase.core.ports.time import to_iso_z
from mockbase.core.entities import Record

from .filters import apply_filters, order_records, paginate, validate_filter
from .models import (
    DeleteInput,
    GetInput,
    InsertInput,
    ListInput,
    RecordListOutput,
    RecordOutput,
    UpdateInput,
    UpsertInput,
)
from .ports import IdGeneratorPort, TableStorePort, TimePort

ID_PREFIX = "mock-id"

DUPLICATE_KEY = "Duplicate key value violates unique constraint"
NOT_FOUND = "No rows found"
NOT_SERIALIZABLE = "Record is not JSON serializable"


class InvalidRecordError(ValueError):
    """Record is not a JSON-serializable object."""


def normalize_record(record: object) -> Record:
    """Deep-copy a record through JSON so it is exactly what gets persisted."""
    if not isinstance(record, dict):
        raise InvalidRecordError("Record must be an object")
    try:
        return json.loads(json.dumps(record))
    except (TypeError, ValueError) as e:
        raise InvalidRecordError(NOT_SERIALIZABLE) from e


def _key(record_id: object) -> str:
    return str(record_id)


# --- Component Entry Points ---


def run_insert(
    inp: InsertInput,
    *,
    tables: TableStorePort,
    ids: IdGeneratorPort,
    time: TimePort,
) -> RecordListOutput:
    """
    Insert one or more records.

    Records without an id get a generated `mock-id-...`; `created_at`
    defaults to now. Fails without writing anything when any id already
    exists in the table or repeats within the batch.
    """
    now = to_iso_z(time.now_utc())
    existing = tables.get_table(inp.table) or {}

    prepared: list[Record] = []
    seen: set[str] = set()
    for item in inp.records:
        try:
            row = normalize_record(item)
        except InvalidRecordError as e:
            return RecordListOutput(error=str(e))

        row["id"] = row.get("id") or ids.new_id(ID_PREFIX)
        if not row.get("created_at"):
            row["created_at"] = now

        key = _key(row["id"])
        if key in existing or key in seen:
            return RecordListOutput(error=DUPLICATE_KEY)
        seen.add(key)
        prepared.append(row)

    if not prepared:
        return RecordListOutput()

    table = tables.ensure_table(inp.table)
    for row in prepared:
        table[_key(row["id"])] = row

    return RecordListOutput(records=copy.deepcopy(prepared), changed=True)


def run_update(
    inp: UpdateInput,
    *,
    tables: TableStorePort,
    time: TimePort,
) -> RecordOutput:
    """Merge a patch into an existing record and stamp `updated_at`."""
    table = tables.get_table(inp.table)
    key = _key(inp.record_id)
    if table is None or key not in table:
        return RecordOutput(error=NOT_FOUND)

    try:
        patch = normalize_record(inp.patch)
    except InvalidRecordError as e:
        return RecordOutput(error=str(e))

    current = table[key]
    updated = {
        **current,
        **patch,
        "id": current["id"],
        "updated_at": to_iso_z(time.now_utc()),
    }
    table[key] = updated
    return RecordOutput(record=copy.deepcopy(updated), changed=True)


def run_upsert(
    inp: UpsertInput,
    *,
    tables: TableStorePort,
    ids: IdGeneratorPort,
    time: TimePort,
) -> RecordListOutput:
    """
    Insert or replace records by id.

    A replaced row takes the new input's fields wholesale; only
    `created_at` carries over from the previous row. `updated_at` is
    always stamped.
    """
    now = to_iso_z(time.now_utc())

    prepared: list[Record] = []
    for item in inp.records:
        try:
            prepared.append(normalize_record(item))
        except InvalidRecordError as e:
            return RecordListOutput(error=str(e))

    if not prepared:
        return RecordListOutput()

    table = tables.ensure_table(inp.table)
    stored: list[Record] = []
    for row in prepared:
        record_id = row.get("id") or ids.new_id(ID_PREFIX)
        previous = table.get(_key(record_id))
        created_at = previous.get("created_at") if previous else None
        record = {
            **row,
            "id": record_id,
            "created_at": created_at or now,
            "updated_at": now,
        }
        table[_key(record_id)] = record
        stored.append(record)

    return RecordListOutput(records=copy.deepcopy(stored), changed=True)


def run_get(inp: GetInput, *, tables: TableStorePort) -> RecordOutput:
    table = tables.get_table(inp.table)
    record = table.get(_key(inp.record_id)) if table else None
    if record is None:
        return RecordOutput(error=NOT_FOUND)
    return RecordOutput(record=copy.deepcopy(record))


def run_list(inp: ListInput, *, tables: TableStorePort) -> RecordListOutput:
    """
    Read a table with filters, ordering and pagination.

    Rows come back in insertion order unless `order_by` is given. An
    unknown table reads as empty.
    """
    for filt in inp.filters:
        error = validate_filter(filt)
        if error:
            return RecordListOutput(error=error)

    if inp.offset < 0 or (inp.limit is not None and inp.limit < 0):
        return RecordListOutput(error="limit and offset must be non-negative")

    table = tables.get_table(inp.table)
    if not table:
        return RecordListOutput()

    rows = apply_filters(table.values(), inp.filters)
    if inp.order_by:
        rows = order_records(rows, inp.order_by, inp.ascending)
    rows = paginate(rows, inp.limit, inp.offset)

    return RecordListOutput(records=copy.deepcopy(rows))


def run_delete(inp: DeleteInput, *, tables: TableStorePort) -> RecordOutput:
    table = tables.get_table(inp.table)
    key = _key(inp.record_id)
    if table is None or key not in table:
        return RecordOutput(error=NOT_FOUND)

    record = table.pop(key)
    return RecordOutput(record=record, changed=True)
