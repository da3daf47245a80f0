"""
Shared fixtures.

Model factories build real (transient) ORM instances so properties such as
``User.requires_approval`` and ``Opportunity.snapshot()`` behave as in
production. Nothing here touches a database.
"""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import FastAPI

from trustteams.core.auth import get_current_user
from trustteams.core.database import get_db
from trustteams.models import Opportunity, OpportunityApplication, User
from trustteams.modules.applications.models import ApplicationStatus
from trustteams.modules.opportunities.models import OpportunityStatus, OpportunityType
from trustteams.modules.users.models import ApprovalStatus, UserRole


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.flush = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def make_user() -> Callable[..., User]:
    """Factory for users. Defaults to an approved, verified, active student."""

    def _make(**overrides) -> User:
        now = datetime.now(UTC)
        fields = {
            "id": str(uuid4()),
            "name": "Test User",
            "email": f"user-{uuid4().hex[:8]}@test.edu",
            "password_hash": "hashed-password",
            "role": UserRole.STUDENT,
            "approval_status": ApprovalStatus.APPROVED,
            "is_active": True,
            "email_verified": True,
            "university_id": None,
            "institute_name": None,
            "approved_by": None,
            "approved_at": None,
            "rejection_reason": None,
            "email_verification_token": None,
            "email_verification_expires": None,
            "last_login": None,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return User(**fields)

    return _make


@pytest.fixture
def make_opportunity() -> Callable[..., Opportunity]:
    """Factory for open internships closing in a week."""

    def _make(**overrides) -> Opportunity:
        now = datetime.now(UTC)
        fields = {
            "id": str(uuid4()),
            "title": "Backend Intern",
            "type": OpportunityType.INTERNSHIP,
            "description": "Work on our API",
            "requirements": None,
            "stipend": None,
            "duration": None,
            "location": "Remote",
            "status": OpportunityStatus.OPEN,
            "closing_date": now + timedelta(days=7),
            "posted_by": str(uuid4()),
            "contact_email": None,
            "contact_phone": None,
            "deleted_at": None,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return Opportunity(**fields)

    return _make


@pytest.fixture
def make_application() -> Callable[..., OpportunityApplication]:
    def _make(**overrides) -> OpportunityApplication:
        now = datetime.now(UTC)
        fields = {
            "id": str(uuid4()),
            "opportunity_id": str(uuid4()),
            "student_id": str(uuid4()),
            "status": ApplicationStatus.PENDING,
            "application_date": now,
            "reviewed_by": None,
            "reviewed_at": None,
            "review_notes": None,
            "cover_letter": "I would love to join.",
            "gpa": 3.5,
            "expected_graduation": "2027",
            "relevant_courses": None,
            "skills": None,
            "experience_summary": None,
            "created_at": now,
            "updated_at": now,
        }
        fields.update(overrides)
        return OpportunityApplication(**fields)

    return _make


@pytest.fixture
def build_app(mock_db) -> Callable[..., FastAPI]:
    """
    Build a FastAPI app around one router with the session and caller overridden.

    Pass ``user=None`` to leave authentication in place.
    """

    def _build(router, prefix: str, user: User | None = None) -> FastAPI:
        app = FastAPI()
        app.include_router(router, prefix=f"/api/v1{prefix}")

        async def _get_db() -> AsyncGenerator:
            yield mock_db

        app.dependency_overrides[get_db] = _get_db
        if user is not None:
            app.dependency_overrides[get_current_user] = lambda: user
        return app

    return _build
