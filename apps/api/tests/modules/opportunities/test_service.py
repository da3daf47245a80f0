"""
Unit tests for the opportunities service layer.

These tests cover:
- Create / update / delete with their audit entries
- Expiry handling on read and in the auto-close job
- Search filter validation
- Audit trail reads
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from trustteams.modules.opportunities.models import (
    AuditAction,
    OpportunityAudit,
    OpportunityStatus,
    OpportunityType,
)
from trustteams.modules.opportunities.schemas import OpportunityWrite
from trustteams.modules.opportunities.service import (
    OpportunityNotFoundError,
    auto_close_expired,
    close_if_expired,
    create_opportunity,
    delete_opportunity,
    get_audit_trail,
    get_opportunity,
    list_opportunities,
    update_opportunity,
)
from trustteams.modules.shared import ForbiddenError, ValidationError
from trustteams.modules.users.models import UserRole

SERVICE = "trustteams.modules.opportunities.service"


@pytest.fixture
def repo():
    with patch(f"{SERVICE}.repository") as mock_repo:
        mock_repo.add_audit = AsyncMock()
        mock_repo.close_many = AsyncMock(return_value=[])
        yield mock_repo


@pytest.fixture(autouse=True)
def poster_names():
    with patch(f"{SERVICE}.UserRepository") as user_repo:
        user_repo.get_names = AsyncMock(return_value={})
        yield user_repo


@pytest.fixture
def poster(make_user):
    return make_user(role=UserRole.ICM, name="Acme Recruiter")


@pytest.fixture
def payload():
    return OpportunityWrite(
        title="Data Intern",
        type="Internship",
        description="Crunch numbers",
        location="Berlin",
        closingDate="2030-01-31",
    )


def _update_in_place(db, opportunity, **fields):
    for key, value in fields.items():
        setattr(opportunity, key, value)
    return opportunity


class TestCreateOpportunity:
    """Tests for create_opportunity function."""

    @pytest.mark.asyncio
    async def test_success_writes_create_audit(
        self, mock_db, repo, poster, payload, make_opportunity
    ):
        created = make_opportunity(posted_by=poster.id, title="Data Intern")
        repo.create = AsyncMock(return_value=created)

        result = await create_opportunity(mock_db, poster, payload)

        create_kwargs = repo.create.call_args.kwargs
        assert create_kwargs["posted_by"] == poster.id
        assert create_kwargs["type"] == OpportunityType.INTERNSHIP
        assert create_kwargs["status"] == OpportunityStatus.OPEN
        assert create_kwargs["closing_date"] == datetime(2030, 1, 31, tzinfo=UTC)

        audit = repo.add_audit.call_args.kwargs
        assert audit["action"] == AuditAction.CREATE
        assert audit["changed_by"] == poster.id
        assert audit["new_values"] == created.snapshot()
        assert "old_values" not in audit

        mock_db.commit.assert_awaited_once()
        assert result.posted_by_name == "Acme Recruiter"

    @pytest.mark.asyncio
    async def test_student_cannot_post(self, mock_db, repo, make_user, payload):
        with pytest.raises(ForbiddenError):
            await create_opportunity(mock_db, make_user(role=UserRole.STUDENT), payload)

        repo.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_required_fields(self, mock_db, repo, poster):
        with pytest.raises(ValidationError) as exc_info:
            await create_opportunity(mock_db, poster, OpportunityWrite(title="Only title"))

        assert exc_info.value.message == "Title, type and description are required"

    @pytest.mark.asyncio
    async def test_invalid_type_lists_allowed_values(self, mock_db, repo, poster):
        data = OpportunityWrite(title="T", type="gig", description="D")

        with pytest.raises(ValidationError) as exc_info:
            await create_opportunity(mock_db, poster, data)

        assert "research_paper" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_status(self, mock_db, repo, poster):
        data = OpportunityWrite(title="T", type="job", description="D", status="paused")

        with pytest.raises(ValidationError) as exc_info:
            await create_opportunity(mock_db, poster, data)

        assert exc_info.value.message == "Invalid status. Must be one of: open, closed"

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(self, mock_db, repo, poster, payload):
        repo.create = AsyncMock(side_effect=RuntimeError("db down"))

        with pytest.raises(RuntimeError):
            await create_opportunity(mock_db, poster, payload)

        mock_db.rollback.assert_awaited_once()


class TestUpdateOpportunity:
    """Tests for update_opportunity function."""

    @pytest.mark.asyncio
    async def test_poster_updates_with_old_and_new_values(
        self, mock_db, repo, poster, payload, make_opportunity
    ):
        opportunity = make_opportunity(posted_by=poster.id, title="Old title")
        repo.get_by_id = AsyncMock(return_value=opportunity)
        repo.update_fields = AsyncMock(side_effect=_update_in_place)

        result = await update_opportunity(mock_db, opportunity.id, poster, payload)

        audit = repo.add_audit.call_args.kwargs
        assert audit["action"] == AuditAction.UPDATE
        assert audit["old_values"]["title"] == "Old title"
        assert audit["new_values"]["title"] == "Data Intern"
        assert result.title == "Data Intern"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_not_found(self, mock_db, repo, poster, payload):
        repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(OpportunityNotFoundError):
            await update_opportunity(mock_db, str(uuid4()), poster, payload)

    @pytest.mark.asyncio
    async def test_other_poster_forbidden(
        self, mock_db, repo, make_user, payload, make_opportunity
    ):
        repo.get_by_id = AsyncMock(return_value=make_opportunity())
        other = make_user(role=UserRole.ACADEMIC_LEADER)

        with pytest.raises(ForbiddenError):
            await update_opportunity(mock_db, str(uuid4()), other, payload)

        repo.update_fields.assert_not_called()

    @pytest.mark.asyncio
    async def test_admin_may_edit_any(self, mock_db, repo, make_user, payload, make_opportunity):
        opportunity = make_opportunity()
        repo.get_by_id = AsyncMock(return_value=opportunity)
        repo.update_fields = AsyncMock(side_effect=_update_in_place)
        admin = make_user(role=UserRole.ADMIN)

        await update_opportunity(mock_db, opportunity.id, admin, payload)

        assert repo.add_audit.call_args.kwargs["changed_by"] == admin.id

    @pytest.mark.asyncio
    async def test_require_owner_blocks_admin(
        self, mock_db, repo, make_user, payload, make_opportunity
    ):
        repo.get_by_id = AsyncMock(return_value=make_opportunity())

        with pytest.raises(ForbiddenError):
            await update_opportunity(
                mock_db,
                str(uuid4()),
                make_user(role=UserRole.ADMIN),
                payload,
                require_owner=True,
            )


class TestDeleteOpportunity:
    """Tests for delete_opportunity function."""

    @pytest.mark.asyncio
    async def test_admin_soft_deletes_with_audit(
        self, mock_db, repo, make_user, make_opportunity
    ):
        opportunity = make_opportunity()
        repo.get_by_id = AsyncMock(return_value=opportunity)
        repo.soft_delete = AsyncMock()
        admin = make_user(role=UserRole.ADMIN)

        await delete_opportunity(mock_db, opportunity.id, admin)

        repo.soft_delete.assert_awaited_once()
        audit = repo.add_audit.call_args.kwargs
        assert audit["action"] == AuditAction.DELETE
        assert audit["old_values"] == opportunity.snapshot()
        assert audit["changed_by"] == admin.id
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_poster_cannot_delete(self, mock_db, repo, poster):
        with pytest.raises(ForbiddenError):
            await delete_opportunity(mock_db, str(uuid4()), poster)

        repo.get_by_id.assert_not_called()

    @pytest.mark.asyncio
    async def test_already_deleted_is_not_found(self, mock_db, repo, make_user):
        repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(OpportunityNotFoundError):
            await delete_opportunity(mock_db, str(uuid4()), make_user(role=UserRole.ADMIN))


class TestCloseIfExpired:
    """Tests for close_if_expired function."""

    @pytest.mark.asyncio
    async def test_nothing_expired(self, mock_db, repo, make_opportunity):
        result = await close_if_expired(mock_db, [make_opportunity()])

        assert result == []
        repo.close_many.assert_not_called()
        mock_db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_closes_and_audits_as_poster(self, mock_db, repo, make_opportunity):
        expired = make_opportunity(closing_date=datetime.now(UTC) - timedelta(hours=1))
        current = make_opportunity()
        repo.close_many = AsyncMock(return_value=[expired.id])

        result = await close_if_expired(mock_db, [expired, current])

        assert result == [expired.id]
        assert repo.close_many.call_args.args[1] == [expired.id]
        audit = repo.add_audit.call_args.kwargs
        assert audit["action"] == AuditAction.AUTO_CLOSE
        assert audit["changed_by"] == expired.posted_by
        assert audit["old_values"] == {"status": "open"}
        assert audit["new_values"] == {"status": "closed"}
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_only_rows_closed_by_this_call_are_audited(
        self, mock_db, repo, make_opportunity
    ):
        """A row closed concurrently by someone else gets no second AUTO_CLOSE entry."""
        past = datetime.now(UTC) - timedelta(hours=1)
        first = make_opportunity(closing_date=past)
        second = make_opportunity(closing_date=past)
        repo.close_many = AsyncMock(return_value=[second.id])

        result = await close_if_expired(mock_db, [first, second])

        assert result == [second.id]
        assert repo.add_audit.await_count == 1


class TestReads:
    """Tests for list_opportunities, get_opportunity and get_audit_trail."""

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, mock_db, repo):
        with pytest.raises(ValidationError):
            await list_opportunities(mock_db, status="archived")

    @pytest.mark.asyncio
    async def test_invalid_type_filter(self, mock_db, repo):
        with pytest.raises(ValidationError):
            await list_opportunities(mock_db, opportunity_type="gig")

    @pytest.mark.asyncio
    async def test_list_passes_filters_and_paginates(self, mock_db, repo, make_opportunity):
        repo.search = AsyncMock(return_value=([make_opportunity()], 21))

        result = await list_opportunities(
            mock_db, search="data", status="OPEN", limit=10, offset=20
        )

        kwargs = repo.search.call_args.kwargs
        assert kwargs["search"] == "data"
        assert kwargs["status"] == OpportunityStatus.OPEN
        assert kwargs["offset"] == 20
        assert result.pagination.total == 21
        assert result.pagination.pages == 3
        assert len(result.opportunities) == 1

    @pytest.mark.asyncio
    async def test_list_requeries_after_closing(self, mock_db, repo, make_opportunity):
        expired = make_opportunity(closing_date=datetime.now(UTC) - timedelta(minutes=5))
        closed = make_opportunity(id=expired.id, status=OpportunityStatus.CLOSED)
        repo.search = AsyncMock(side_effect=[([expired], 1), ([closed], 1)])
        repo.close_many = AsyncMock(return_value=[expired.id])

        result = await list_opportunities(mock_db)

        assert repo.search.await_count == 2
        assert result.opportunities[0].status == OpportunityStatus.CLOSED

    @pytest.mark.asyncio
    async def test_get_not_found(self, mock_db, repo):
        repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(OpportunityNotFoundError) as exc_info:
            await get_opportunity(mock_db, str(uuid4()))

        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_get_never_returns_stale_open(
        self, mock_db, repo, poster_names, make_opportunity
    ):
        expired = make_opportunity(closing_date=datetime.now(UTC) - timedelta(minutes=5))
        closed = make_opportunity(
            id=expired.id,
            posted_by=expired.posted_by,
            status=OpportunityStatus.CLOSED,
        )
        repo.get_by_id = AsyncMock(side_effect=[expired, closed])
        repo.close_many = AsyncMock(return_value=[expired.id])
        poster_names.get_names = AsyncMock(return_value={expired.posted_by: "Poster"})

        result = await get_opportunity(mock_db, expired.id)

        assert result.status == OpportunityStatus.CLOSED
        assert result.posted_by_name == "Poster"

    @pytest.mark.asyncio
    async def test_audit_trail_of_deleted_opportunity(self, mock_db, repo, make_opportunity):
        opportunity = make_opportunity(deleted_at=datetime.now(UTC))
        entry = MagicMock(spec=OpportunityAudit)
        entry.id = str(uuid4())
        entry.opportunity_id = opportunity.id
        entry.action = AuditAction.DELETE
        entry.changed_by = str(uuid4())
        entry.old_values = opportunity.snapshot()
        entry.new_values = None
        entry.created_at = datetime.now(UTC)
        repo.get_by_id = AsyncMock(return_value=opportunity)
        repo.get_audit_trail = AsyncMock(return_value=[(entry, "Admin")])

        result = await get_audit_trail(mock_db, opportunity.id)

        repo.get_by_id.assert_awaited_once_with(mock_db, opportunity.id, include_deleted=True)
        assert result[0].action == AuditAction.DELETE
        assert result[0].changed_by_name == "Admin"

    @pytest.mark.asyncio
    async def test_audit_trail_unknown_opportunity(self, mock_db, repo):
        repo.get_by_id = AsyncMock(return_value=None)

        with pytest.raises(OpportunityNotFoundError):
            await get_audit_trail(mock_db, str(uuid4()))


class TestAutoCloseExpired:
    """Tests for auto_close_expired function."""

    @pytest.mark.asyncio
    async def test_nothing_to_close(self, mock_db, repo):
        repo.list_expired_open = AsyncMock(return_value=[])

        result = await auto_close_expired(mock_db)

        assert result.closed_count == 0
        assert result.message == "No expired opportunities found"

    @pytest.mark.asyncio
    async def test_closes_expired(self, mock_db, repo, make_opportunity):
        past = datetime.now(UTC) - timedelta(days=1)
        expired = [make_opportunity(closing_date=past), make_opportunity(closing_date=past)]
        repo.list_expired_open = AsyncMock(return_value=expired)
        repo.close_many = AsyncMock(return_value=[o.id for o in expired])

        result = await auto_close_expired(mock_db)

        assert result.closed_count == 2
        assert result.message == "Successfully closed 2 expired opportunities"
        assert set(result.closed_ids) == {o.id for o in expired}
        assert repo.add_audit.await_count == 2
