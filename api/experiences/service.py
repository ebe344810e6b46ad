"""
Experience business logic.

Scope:
- validation of create/update payloads before any store call
- defaults and caps for list limits and search page sizes
- pagination metadata for search
"""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from core.errors import InvalidInputError, NotFoundError

from . import schemas
from .repository import ExperienceRepository

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 100
MAX_LIST_LIMIT = 1000
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 40

# OFFSET is bound as a PostgreSQL bigint.
MAX_OFFSET = 2**63 - 1

REQUIRED_FIELDS = ("source_type", "field_id", "field_type")


def list_window(limit: int | None, offset: int | None) -> tuple[int, int]:
    """
    Normalize list pagination: limit defaults to 100 and is capped at 1000; offset is never negative.
    """
    if limit is None or limit <= 0:
        limit = DEFAULT_LIST_LIMIT
    limit = min(limit, MAX_LIST_LIMIT)
    offset = max(offset or 0, 0)
    if offset > MAX_OFFSET:
        raise InvalidInputError(f"offset must be less than or equal to {MAX_OFFSET}")
    return limit, offset


def search_window(page: int | None, page_size: int | None) -> tuple[int, int]:
    """
    Normalize (page, page_size) for search.

    page_size: absent or 0 -> 20, capped at 40. Negative page or page_size is rejected.
    """
    page = 0 if page is None else page
    if page < 0:
        raise InvalidInputError("page must be greater than or equal to 0")
    if page_size is not None and page_size < 0:
        raise InvalidInputError("pageSize must be greater than or equal to 0")
    if not page_size:
        page_size = DEFAULT_PAGE_SIZE
    page_size = min(page_size, MAX_PAGE_SIZE)
    if page * page_size > MAX_OFFSET:
        raise InvalidInputError("page is too large")
    return page, page_size


def total_pages(total_count: int, page_size: int) -> int:
    pages = total_count // page_size
    if total_count % page_size > 0:
        pages += 1
    return pages


def _to_experience(row: dict[str, Any]) -> schemas.ExperienceResponse:
    return schemas.ExperienceResponse(
        id=UUID(str(row["id"])),
        collected_at=row["collected_at"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        source_type=str(row["source_type"]),
        source_id=row.get("source_id"),
        source_name=row.get("source_name"),
        field_id=str(row["field_id"]),
        field_label=row.get("field_label"),
        field_type=str(row["field_type"]),
        value_text=row.get("value_text"),
        value_number=row.get("value_number"),
        value_boolean=row.get("value_boolean"),
        value_date=row.get("value_date"),
        value_json=row.get("value_json"),
        metadata=row.get("metadata"),
        language=row.get("language"),
        user_identifier=row.get("user_identifier"),
    )


def validate_create(payload: schemas.CreateExperienceRequest) -> None:
    for name in REQUIRED_FIELDS:
        if not (getattr(payload, name) or "").strip():
            raise InvalidInputError(f"{name} is required")


def validate_update(changes: dict[str, Any]) -> None:
    for name in REQUIRED_FIELDS:
        if name in changes and not str(changes[name]).strip():
            raise InvalidInputError(f"{name} cannot be empty")


class ExperienceService:
    def __init__(self, repository: ExperienceRepository) -> None:
        self._repository = repository

    async def create(self, payload: schemas.CreateExperienceRequest) -> schemas.ExperienceResponse:
        validate_create(payload)
        row = await self._repository.create(payload.model_dump())
        logger.info(
            "experience_created id=%s source_type=%s field_id=%s",
            row["id"],
            row["source_type"],
            row["field_id"],
        )
        return _to_experience(row)

    async def get(self, experience_id: UUID) -> schemas.ExperienceResponse:
        row = await self._repository.get(experience_id)
        if row is None:
            raise NotFoundError("experience not found")
        return _to_experience(row)

    async def list_experiences(
        self,
        filters: schemas.ExperienceFilters,
        *,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[schemas.ExperienceResponse]:
        limit, offset = list_window(limit, offset)
        rows = await self._repository.list_filtered(filters, limit=limit, offset=offset)
        return [_to_experience(row) for row in rows]

    async def update(
        self,
        experience_id: UUID,
        payload: schemas.UpdateExperienceRequest,
    ) -> schemas.ExperienceResponse:
        changes = payload.changes()
        validate_update(changes)
        row = await self._repository.update(experience_id, changes)
        if row is None:
            raise NotFoundError("experience not found")
        return _to_experience(row)

    async def delete(self, experience_id: UUID) -> None:
        deleted = await self._repository.delete(experience_id)
        if not deleted:
            raise NotFoundError("experience not found")
        logger.info("experience_deleted id=%s", experience_id)

    async def search(
        self,
        filters: schemas.ExperienceFilters,
        *,
        page: int | None = 0,
        page_size: int | None = None,
    ) -> schemas.SearchExperiencesResponse:
        page, page_size = search_window(page, page_size)
        rows, total_count = await self._repository.search(
            filters,
            limit=page_size,
            offset=page * page_size,
        )
        return schemas.SearchExperiencesResponse(
            data=[_to_experience(row) for row in rows],
            page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=total_pages(total_count, page_size),
        )
