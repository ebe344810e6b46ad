"""
Experience persistence (raw SQL).

Filters and partial updates are expressed as `core.query.Predicate` lists, so
every caller-supplied value is a bound parameter. Column names only ever come
from the constants in this module.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from core.db import Database, affected_rows, json_arg, json_value, store_errors
from core.query import Predicate, compose, contains_any, equals, where_clause

from .schemas import ExperienceFilters

_COLUMNS = """
    id, collected_at, created_at, updated_at,
    source_type, source_id, source_name,
    field_id, field_label, field_type,
    value_text, value_number, value_boolean, value_date, value_json,
    metadata, language, user_identifier
"""

_JSON_COLUMNS = ("value_json", "metadata")

TEXT_SEARCH_COLUMNS = ("value_text", "field_label", "source_name", "field_id")

# Columns a partial update may touch, in the order assignments are emitted.
UPDATABLE_COLUMNS = (
    "source_type",
    "source_id",
    "source_name",
    "field_id",
    "field_label",
    "field_type",
    "value_text",
    "value_number",
    "value_boolean",
    "value_date",
    "value_json",
    "metadata",
    "language",
    "user_identifier",
)

# Newest observation first; id breaks ties so pages never overlap.
_ORDER_BY = " ORDER BY collected_at DESC, id DESC"


def _decode_row(row: dict[str, Any]) -> dict[str, Any]:
    for column in _JSON_COLUMNS:
        row[column] = json_value(row.get(column))
    return row


def filter_predicates(filters: ExperienceFilters) -> list[Predicate]:
    """
    One predicate per filter that is set; order is fixed so placeholder numbering is stable.
    """
    predicates: list[Predicate] = []
    if filters.query:
        predicates.append(contains_any(TEXT_SEARCH_COLUMNS, filters.query))
    for column in ("source_type", "source_id", "field_id", "field_type", "user_identifier"):
        value = getattr(filters, column)
        if value is not None:
            predicates.append(equals(column, value))
    if filters.start_date is not None:
        predicates.append(Predicate("collected_at >= {0}", filters.start_date))
    if filters.end_date is not None:
        predicates.append(Predicate("collected_at <= {0}", filters.end_date))
    return predicates


def update_assignments(changes: dict[str, Any]) -> list[Predicate]:
    assignments: list[Predicate] = []
    for column in UPDATABLE_COLUMNS:
        if column not in changes:
            continue
        if column in _JSON_COLUMNS:
            assignments.append(Predicate(f"{column} = {{0}}::jsonb", json_arg(changes[column])))
        else:
            assignments.append(Predicate(f"{column} = {{0}}", changes[column]))
    return assignments


def build_list_query(filters: ExperienceFilters, *, limit: int, offset: int) -> tuple[str, list[Any]]:
    where_sql, args = where_clause(filter_predicates(filters))
    n = len(args)
    sql = f"SELECT {_COLUMNS} FROM experience_data{where_sql}{_ORDER_BY} LIMIT ${n + 1} OFFSET ${n + 2}"
    return sql, [*args, limit, offset]


def build_count_query(filters: ExperienceFilters) -> tuple[str, list[Any]]:
    where_sql, args = where_clause(filter_predicates(filters))
    return f"SELECT count(*) FROM experience_data{where_sql}", args


def build_update_query(experience_id: UUID, changes: dict[str, Any]) -> tuple[str, list[Any]] | None:
    """
    UPDATE statement for the supplied columns, or None when nothing would change.
    """
    assignments = update_assignments(changes)
    if not assignments:
        return None
    set_sql, args = compose(assignments, joiner=", ")
    sql = (
        f"UPDATE experience_data SET {set_sql}, updated_at = now() "
        f"WHERE id = ${len(args) + 1} RETURNING {_COLUMNS}"
    )
    return sql, [*args, experience_id]


class ExperienceRepository:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        """
        Insert a record. created_at and updated_at come from the same now(), so they are equal.
        """
        with store_errors("create experience"):
            row = await self._db.fetch_one(
                f"""
                INSERT INTO experience_data (
                    collected_at, source_type, source_id, source_name,
                    field_id, field_label, field_type,
                    value_text, value_number, value_boolean, value_date, value_json,
                    metadata, language, user_identifier
                )
                VALUES (
                    COALESCE($1, now()), $2, $3, $4,
                    $5, $6, $7,
                    $8, $9, $10, $11, $12::jsonb,
                    $13::jsonb, $14, $15
                )
                RETURNING {_COLUMNS}
                """,
                values.get("collected_at"),
                values["source_type"],
                values.get("source_id"),
                values.get("source_name"),
                values["field_id"],
                values.get("field_label"),
                values["field_type"],
                values.get("value_text"),
                values.get("value_number"),
                values.get("value_boolean"),
                values.get("value_date"),
                json_arg(values.get("value_json")),
                json_arg(values.get("metadata")),
                values.get("language"),
                values.get("user_identifier"),
            )
        if row is None:
            raise RuntimeError("Failed to create experience.")
        return _decode_row(row)

    async def get(self, experience_id: UUID) -> dict[str, Any] | None:
        with store_errors("get experience"):
            row = await self._db.fetch_one(
                f"SELECT {_COLUMNS} FROM experience_data WHERE id = $1",
                experience_id,
            )
        return _decode_row(row) if row is not None else None

    async def list_filtered(self, filters: ExperienceFilters, *, limit: int, offset: int) -> list[dict[str, Any]]:
        sql, args = build_list_query(filters, limit=limit, offset=offset)
        with store_errors("list experiences"):
            rows = await self._db.fetch_all(sql, *args)
        return [_decode_row(row) for row in rows]

    async def search(
        self,
        filters: ExperienceFilters,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        """
        One page of matching rows plus the total match count.

        Both statements are built from the same predicate list.
        """
        count_sql, count_args = build_count_query(filters)
        with store_errors("count experiences"):
            total = await self._db.fetch_val(count_sql, *count_args)

        sql, args = build_list_query(filters, limit=limit, offset=offset)
        with store_errors("search experiences"):
            rows = await self._db.fetch_all(sql, *args)
        return [_decode_row(row) for row in rows], int(total or 0)

    async def update(self, experience_id: UUID, changes: dict[str, Any]) -> dict[str, Any] | None:
        """
        Apply a partial update. With no changes this is a plain read and updated_at is untouched.
        """
        query = build_update_query(experience_id, changes)
        if query is None:
            return await self.get(experience_id)

        sql, args = query
        with store_errors("update experience"):
            row = await self._db.fetch_one(sql, *args)
        return _decode_row(row) if row is not None else None

    async def delete(self, experience_id: UUID) -> bool:
        with store_errors("delete experience"):
            status = await self._db.execute("DELETE FROM experience_data WHERE id = $1", experience_id)
        return affected_rows(status) > 0
