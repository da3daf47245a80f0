"""
Unit tests for the ICM service.

These tests cover:
- Profile reads with defaults
- Profile updates (validation, email uniqueness, partial sections)
- Ownership checks on postings
- Stats
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest

from trustteams.modules.icm.models import IcmProfile
from trustteams.modules.icm.schemas import IcmProfileUpdate
from trustteams.modules.icm.service import (
    EmailTakenError,
    OwnOpportunityNotFoundError,
    get_own_opportunity,
    get_stats,
    get_student_profile,
    list_applications,
    to_response,
    update_profile,
)
from trustteams.modules.opportunities.service import OpportunityNotFoundError
from trustteams.modules.opportunities.service import to_response as opportunity_response
from trustteams.modules.shared import ValidationError
from trustteams.modules.students.service import to_response as student_response
from trustteams.modules.users.models import UserRole

SERVICE = "trustteams.modules.icm.service"


@pytest.fixture
def icm_user(make_user):
    return make_user(role=UserRole.ICM, name="Acme Recruiter", email="recruiter@acme.com")


@pytest.fixture
def repo():
    with patch(f"{SERVICE}.repository") as mock:
        mock.get_by_user_id = AsyncMock(return_value=None)

        async def _create(db, user_id, **sections):
            return IcmProfile(user_id=user_id, **sections)

        async def _update_fields(db, profile, **sections):
            for key, value in sections.items():
                setattr(profile, key, value)
            return profile

        mock.create = AsyncMock(side_effect=_create)
        mock.update_fields = AsyncMock(side_effect=_update_fields)
        yield mock


@pytest.fixture
def user_repo():
    with patch(f"{SERVICE}.UserRepository") as mock:
        mock.email_exists = AsyncMock(return_value=False)

        async def _update(db, user, **fields):
            for key, value in fields.items():
                setattr(user, key, value)
            return user

        mock.update = AsyncMock(side_effect=_update)
        yield mock


class TestToResponse:
    def test_missing_profile_uses_defaults(self, icm_user):
        response = to_response(icm_user, None)

        assert response.company.name == "Company Name"
        assert response.company.contact_email == "recruiter@acme.com"
        assert response.recruitment.hiring_status == "actively_hiring"
        assert response.people.employees_on_platform == 0

    def test_stored_sections_are_returned(self, icm_user):
        now = datetime.now(UTC)
        profile = IcmProfile(
            user_id=icm_user.id,
            company={"name": "Acme", "contact_email": "hr@acme.com"},
            culture={"mission": "Build"},
            recruitment={},
            highlights={},
            people={},
            created_at=now,
            updated_at=now,
        )

        response = to_response(icm_user, profile)

        assert response.company.name == "Acme"
        assert response.company.contact_email == "hr@acme.com"
        assert response.culture.mission == "Build"


class TestUpdateProfile:
    """Tests for update_profile function."""

    @pytest.mark.asyncio
    async def test_creates_profile_with_sent_sections(self, mock_db, repo, user_repo, icm_user):
        data = IcmProfileUpdate.model_validate(
            {
                "name": "Acme HR",
                "email": "HR@Acme.com",
                "instituteName": "Acme Corp",
                "company": {"name": "Acme", "yearEstablished": 2001},
            }
        )

        response = await update_profile(mock_db, icm_user, data)

        user_repo.update.assert_awaited_once_with(
            mock_db, icm_user, name="Acme HR", email="HR@Acme.com", institute_name="Acme Corp"
        )
        created_sections = repo.create.await_args.kwargs
        assert set(created_sections) == {"company"}
        assert created_sections["company"]["year_established"] == 2001
        assert response.company.name == "Acme"
        assert response.culture.mission == ""
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_omitted_sections_keep_stored_value(self, mock_db, repo, user_repo, icm_user):
        stored = IcmProfile(
            user_id=icm_user.id,
            company={"name": "Acme"},
            culture={"mission": "Build"},
            recruitment={},
            highlights={},
            people={},
        )
        repo.get_by_user_id.return_value = stored
        data = IcmProfileUpdate(
            name="Acme", email=icm_user.email, culture={"vision": "Everywhere"}
        )

        response = await update_profile(mock_db, icm_user, data)

        assert set(repo.update_fields.await_args.kwargs) == {"culture"}
        assert response.company.name == "Acme"
        assert response.culture.vision == "Everywhere"

    @pytest.mark.asyncio
    async def test_mixed_case_email_kept_as_stored(self, mock_db, repo, user_repo, make_user):
        user = make_user(role=UserRole.ICM, email="Bob@Corp.com")

        await update_profile(mock_db, user, IcmProfileUpdate(name="Bob", email="Bob@Corp.com"))

        assert user_repo.update.await_args.kwargs["email"] == "Bob@Corp.com"
        user_repo.email_exists.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name,email", [("", "a@acme.com"), ("Acme", ""), ("  ", "  ")])
    async def test_name_and_email_required(self, mock_db, repo, user_repo, icm_user, name, email):
        with pytest.raises(ValidationError) as exc_info:
            await update_profile(mock_db, icm_user, IcmProfileUpdate(name=name, email=email))

        assert exc_info.value.message == "Name and email are required"

    @pytest.mark.asyncio
    async def test_malformed_email(self, mock_db, repo, user_repo, icm_user):
        with pytest.raises(ValidationError) as exc_info:
            await update_profile(mock_db, icm_user, IcmProfileUpdate(name="Acme", email="not-an-email"))

        assert exc_info.value.message == "Invalid email address"
        user_repo.update.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_taken(self, mock_db, repo, user_repo, icm_user):
        user_repo.email_exists.return_value = True

        with pytest.raises(EmailTakenError):
            await update_profile(mock_db, icm_user, IcmProfileUpdate(name="Acme", email="other@acme.com"))

        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_rollback_on_failure(self, mock_db, repo, user_repo, icm_user):
        repo.get_by_user_id.side_effect = RuntimeError("db down")

        with pytest.raises(RuntimeError):
            await update_profile(mock_db, icm_user, IcmProfileUpdate(name="Acme", email=icm_user.email))

        mock_db.rollback.assert_awaited_once()


class TestOwnOpportunities:
    @pytest.mark.asyncio
    async def test_own_posting_returned(self, mock_db, icm_user, make_opportunity):
        opportunity = opportunity_response(make_opportunity(posted_by=icm_user.id))

        with patch(
            f"{SERVICE}.opportunities_service.get_opportunity",
            new_callable=AsyncMock,
            return_value=opportunity,
        ):
            result = await get_own_opportunity(mock_db, icm_user, opportunity.id)

        assert result is opportunity

    @pytest.mark.asyncio
    async def test_foreign_posting_looks_missing(self, mock_db, icm_user, make_opportunity):
        with patch(
            f"{SERVICE}.opportunities_service.get_opportunity",
            new_callable=AsyncMock,
            return_value=opportunity_response(make_opportunity()),
        ):
            with pytest.raises(OwnOpportunityNotFoundError) as exc_info:
                await get_own_opportunity(mock_db, icm_user, "opp")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Opportunity not found or access denied"

    @pytest.mark.asyncio
    async def test_missing_posting(self, mock_db, icm_user):
        with patch(
            f"{SERVICE}.opportunities_service.get_opportunity",
            new_callable=AsyncMock,
            side_effect=OpportunityNotFoundError(),
        ):
            with pytest.raises(OwnOpportunityNotFoundError):
                await get_own_opportunity(mock_db, icm_user, "opp")

    @pytest.mark.asyncio
    async def test_applications_of_foreign_posting(self, mock_db, icm_user, make_opportunity):
        with (
            patch(f"{SERVICE}.opportunity_repository") as opp_repo,
            patch(f"{SERVICE}.applications_service") as applications,
        ):
            opp_repo.get_by_id = AsyncMock(return_value=make_opportunity())
            applications.list_for_opportunity = AsyncMock()

            with pytest.raises(OwnOpportunityNotFoundError):
                await list_applications(mock_db, icm_user, "opp")

        applications.list_for_opportunity.assert_not_called()


class TestStudentProfile:
    @pytest.mark.asyncio
    async def test_applications_scoped_to_caller(self, mock_db, icm_user, make_user):
        student = make_user()
        with (
            patch(
                f"{SERVICE}.students_service.get_student_profile",
                new_callable=AsyncMock,
                return_value=student_response(student, None),
            ),
            patch(
                f"{SERVICE}.applications_service.list_for_student",
                new_callable=AsyncMock,
                return_value=[],
            ) as list_for_student,
        ):
            result = await get_student_profile(mock_db, icm_user, student.id)

        assert result.student.user_id == student.id
        list_for_student.assert_awaited_once_with(
            mock_db, student.id, icm_user, poster_id=icm_user.id
        )


class TestGetStats:
    @pytest.mark.asyncio
    async def test_counts(self, mock_db, icm_user):
        with (
            patch(f"{SERVICE}.opportunity_repository") as opp_repo,
            patch(f"{SERVICE}.application_repository") as app_repo,
        ):
            opp_repo.count_by_poster = AsyncMock(side_effect=[4, 1])
            app_repo.count_for_posters = AsyncMock(return_value=9)

            stats = await get_stats(mock_db, icm_user)

        assert stats.total_opportunities == 4
        assert stats.total_applications == 9
        assert stats.recent_activity == 1
        assert "since" in opp_repo.count_by_poster.await_args_list[1].kwargs
