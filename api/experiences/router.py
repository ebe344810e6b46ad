"""
Experience API endpoints.

Every route here requires a valid API key (see `auth.dependencies`).
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import AwareDatetime

from auth import dependencies as auth_dependencies
from core.db import Database, get_database

from . import schemas
from .repository import ExperienceRepository
from .service import ExperienceService

router = APIRouter(
    prefix="/v1/experiences",
    dependencies=[Depends(auth_dependencies.require_api_key)],
)


def get_experience_service(database: Database = Depends(get_database)) -> ExperienceService:
    return ExperienceService(ExperienceRepository(database))


def _present(value: str | None) -> str | None:
    # Empty query-string values mean "no filter".
    return value if value else None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_experience(
    request: schemas.CreateExperienceRequest,
    service: ExperienceService = Depends(get_experience_service),
) -> dict:
    experience = await service.create(request)
    return {"data": experience}


@router.get("")
async def list_experiences(
    source_type: str | None = Query(default=None),
    source_id: str | None = Query(default=None),
    field_id: str | None = Query(default=None),
    user_identifier: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    offset: int | None = Query(default=None),
    service: ExperienceService = Depends(get_experience_service),
) -> dict:
    filters = schemas.ExperienceFilters(
        source_type=_present(source_type),
        source_id=_present(source_id),
        field_id=_present(field_id),
        user_identifier=_present(user_identifier),
    )
    experiences = await service.list_experiences(filters, limit=limit, offset=offset)
    return {"data": experiences}


# Declared before /{experience_id} so "search" is never parsed as an id.
@router.get("/search")
async def search_experiences(
    query: str | None = Query(default=None, max_length=500),
    source_type: str | None = Query(default=None),
    source_id: str | None = Query(default=None),
    field_id: str | None = Query(default=None),
    field_type: str | None = Query(default=None),
    user_identifier: str | None = Query(default=None),
    start_date: AwareDatetime | None = Query(default=None),
    end_date: AwareDatetime | None = Query(default=None),
    page_size: int | None = Query(default=None, alias="pageSize"),
    page: int = Query(default=0),
    service: ExperienceService = Depends(get_experience_service),
) -> schemas.SearchExperiencesResponse:
    filters = schemas.ExperienceFilters(
        query=_present(query),
        source_type=_present(source_type),
        source_id=_present(source_id),
        field_id=_present(field_id),
        field_type=_present(field_type),
        user_identifier=_present(user_identifier),
        start_date=start_date,
        end_date=end_date,
    )
    return await service.search(filters, page=page, page_size=page_size)


@router.get("/{experience_id}")
async def get_experience(
    experience_id: UUID,
    service: ExperienceService = Depends(get_experience_service),
) -> dict:
    experience = await service.get(experience_id)
    return {"data": experience}


@router.patch("/{experience_id}")
async def update_experience(
    experience_id: UUID,
    request: schemas.UpdateExperienceRequest,
    service: ExperienceService = Depends(get_experience_service),
) -> dict:
    experience = await service.update(experience_id, request)
    return {"data": experience}


@router.delete("/{experience_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_experience(
    experience_id: UUID,
    service: ExperienceService = Depends(get_experience_service),
) -> Response:
    await service.delete(experience_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
