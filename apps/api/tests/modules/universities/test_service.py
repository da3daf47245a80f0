"""
Unit tests for the university catalog.
"""

from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from trustteams.modules.universities.models import University
from trustteams.modules.universities.router import router
from trustteams.modules.universities.schemas import UniversityCreate
from trustteams.modules.universities.service import (
    UniversityExistsError,
    UniversityNotFoundError,
    create_university,
    get_university,
)
from trustteams.modules.users.models import UserRole

SERVICE = "trustteams.modules.universities.service"


def _university(**overrides) -> University:
    fields = {"id": str(uuid4()), "name": "Tech U", "domain": "tech.edu", "is_active": True}
    fields.update(overrides)
    return University(**fields)


class TestGetUniversity:
    @pytest.mark.asyncio
    async def test_missing(self, mock_db):
        with patch(f"{SERVICE}.UniversityRepository") as repo:
            repo.get_by_id = AsyncMock(return_value=None)
            with pytest.raises(UniversityNotFoundError) as exc_info:
                await get_university(mock_db, "u1")

        assert exc_info.value.status_code == 404


class TestCreateUniversity:
    """Tests for create_university function."""

    @pytest.mark.asyncio
    async def test_creates_and_commits(self, mock_db):
        created = _university()
        with patch(f"{SERVICE}.UniversityRepository") as repo:
            repo.get_by_name_or_domain = AsyncMock(return_value=None)
            repo.create = AsyncMock(return_value=created)

            result = await create_university(
                mock_db, UniversityCreate(name="Tech U", domain="tech.edu")
            )

        assert result is created
        assert repo.create.await_args.kwargs["domain"] == "tech.edu"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_name_or_domain_taken(self, mock_db):
        with patch(f"{SERVICE}.UniversityRepository") as repo:
            repo.get_by_name_or_domain = AsyncMock(return_value=MagicMock(spec=University))
            repo.create = AsyncMock()

            with pytest.raises(UniversityExistsError):
                await create_university(mock_db, UniversityCreate(name="Tech U", domain="tech.edu"))

        repo.create.assert_not_called()


class TestUniversityEndpoints:
    def test_public_catalog(self, build_app):
        client = TestClient(build_app(router, "/universities"))
        with patch(
            f"{SERVICE}.list_universities", new_callable=AsyncMock, return_value=[_university()]
        ):
            response = client.get("/api/v1/universities")

        assert response.status_code == 200
        assert response.json()["universities"][0]["name"] == "Tech U"

    def test_register_requires_admin(self, build_app, make_user):
        client = TestClient(
            build_app(router, "/universities", user=make_user(role=UserRole.UNIVERSITY_ADMIN))
        )

        response = client.post("/api/v1/universities", json={"name": "X", "domain": "x.edu"})

        assert response.status_code == 403

    def test_invalid_domain_is_422(self, build_app, make_user):
        client = TestClient(build_app(router, "/universities", user=make_user(role=UserRole.ADMIN)))

        response = client.post("/api/v1/universities", json={"name": "X", "domain": "nodot"})

        assert response.status_code == 422
