"""Pytest configuration and fixtures.

Unit tests run without PostgreSQL: the repositories are replaced by small
in-memory fakes and the app is built with a placeholder database.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from auth import dependencies as auth_dependencies
from auth.security import hash_api_key
from auth.service import ApiKeyValidator
from experiences import router as experiences_router
from experiences.repository import TEXT_SEARCH_COLUMNS, UPDATABLE_COLUMNS
from experiences.schemas import ExperienceFilters
from experiences.service import ExperienceService
from main import create_app

TEST_API_KEY = "test-api-key-12345"
INACTIVE_API_KEY = "inactive-api-key-67890"

BASE_TIME = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeExperienceRepository:
    """In-memory stand-in for ExperienceRepository with the same filter semantics."""

    def __init__(self) -> None:
        self.rows: dict[UUID, dict[str, Any]] = {}
        self.calls: list[str] = []

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        self.calls.append("create")
        now = datetime.now(timezone.utc)
        row = {column: values.get(column) for column in UPDATABLE_COLUMNS}
        row.update(
            id=uuid4(),
            collected_at=values.get("collected_at") or now,
            created_at=now,
            updated_at=now,
        )
        self.rows[row["id"]] = row
        return dict(row)

    async def get(self, experience_id: UUID) -> dict[str, Any] | None:
        self.calls.append("get")
        row = self.rows.get(experience_id)
        return dict(row) if row is not None else None

    def _matches(self, row: dict[str, Any], filters: ExperienceFilters) -> bool:
        if filters.query:
            needle = filters.query.lower()
            if not any(needle in str(row.get(column) or "").lower() for column in TEXT_SEARCH_COLUMNS):
                return False
        for column in ("source_type", "source_id", "field_id", "field_type", "user_identifier"):
            value = getattr(filters, column)
            if value is not None and row.get(column) != value:
                return False
        if filters.start_date is not None and row["collected_at"] < filters.start_date:
            return False
        if filters.end_date is not None and row["collected_at"] > filters.end_date:
            return False
        return True

    def _filtered(self, filters: ExperienceFilters) -> list[dict[str, Any]]:
        rows = [row for row in self.rows.values() if self._matches(row, filters)]
        rows.sort(key=lambda row: (row["collected_at"], str(row["id"])), reverse=True)
        return rows

    async def list_filtered(self, filters: ExperienceFilters, *, limit: int, offset: int) -> list[dict[str, Any]]:
        self.calls.append("list")
        return [dict(row) for row in self._filtered(filters)[offset : offset + limit]]

    async def search(
        self,
        filters: ExperienceFilters,
        *,
        limit: int,
        offset: int,
    ) -> tuple[list[dict[str, Any]], int]:
        self.calls.append("search")
        rows = self._filtered(filters)
        return [dict(row) for row in rows[offset : offset + limit]], len(rows)

    async def update(self, experience_id: UUID, changes: dict[str, Any]) -> dict[str, Any] | None:
        self.calls.append("update")
        row = self.rows.get(experience_id)
        if row is None:
            return None
        applied = {column: changes[column] for column in UPDATABLE_COLUMNS if column in changes}
        if applied:
            row.update(applied)
            row["updated_at"] = datetime.now(timezone.utc)
        return dict(row)

    async def delete(self, experience_id: UUID) -> bool:
        self.calls.append("delete")
        return self.rows.pop(experience_id, None) is not None


class FakeApiKeyRepository:
    def __init__(self) -> None:
        self.keys: dict[str, dict[str, Any]] = {}
        self.touched: list[str] = []
        self.fail_touch = False

    def add(self, raw_key: str, *, is_active: bool = True, name: str = "Test API Key") -> dict[str, Any]:
        key_hash = hash_api_key(raw_key)
        row = {
            "id": uuid4(),
            "key_hash": key_hash,
            "name": name,
            "is_active": is_active,
            "created_at": BASE_TIME,
            "updated_at": BASE_TIME,
            "last_used_at": None,
        }
        self.keys[key_hash] = row
        return row

    async def get_active_by_hash(self, key_hash: str) -> dict[str, Any] | None:
        row = self.keys.get(key_hash)
        if row is None or not row["is_active"]:
            return None
        return dict(row)

    async def touch_last_used(self, key_hash: str) -> None:
        if self.fail_touch:
            raise RuntimeError("connection reset")
        self.touched.append(key_hash)
        if key_hash in self.keys:
            self.keys[key_hash]["last_used_at"] = datetime.now(timezone.utc)


@pytest.fixture
def experience_repository() -> FakeExperienceRepository:
    return FakeExperienceRepository()


@pytest.fixture
def experience_service(experience_repository: FakeExperienceRepository) -> ExperienceService:
    return ExperienceService(experience_repository)  # type: ignore[arg-type]


@pytest.fixture
def api_key_repository() -> FakeApiKeyRepository:
    repository = FakeApiKeyRepository()
    repository.add(TEST_API_KEY)
    repository.add(INACTIVE_API_KEY, is_active=False, name="Disabled")
    return repository


@pytest.fixture
def client(experience_service: ExperienceService, api_key_repository: FakeApiKeyRepository):
    """Test client for the full app with in-memory repositories."""
    app = create_app(database=Mock())
    app.dependency_overrides[experiences_router.get_experience_service] = lambda: experience_service
    app.dependency_overrides[auth_dependencies.get_api_key_validator] = lambda: ApiKeyValidator(
        api_key_repository  # type: ignore[arg-type]
    )
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {TEST_API_KEY}"}


def at(minutes: int) -> datetime:
    """A collected_at timestamp `minutes` after BASE_TIME."""
    return BASE_TIME + timedelta(minutes=minutes)
