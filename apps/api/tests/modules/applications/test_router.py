"""
Router tests for /applications endpoints.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from trustteams.modules.applications.models import ApplicationStatus
from trustteams.modules.applications.router import router
from trustteams.modules.applications.schemas import ApplyResponse, StatusUpdateResponse
from trustteams.modules.applications.service import (
    DuplicateApplicationError,
    InvalidStatusTransitionError,
)
from trustteams.modules.shared import ForbiddenError
from trustteams.modules.users.models import UserRole

SERVICE = "trustteams.modules.applications.service"


def _client(build_app, user=None) -> TestClient:
    return TestClient(build_app(router, "/applications", user=user))


class TestApplyEndpoint:
    """Tests for POST /applications/apply."""

    def test_created(self, build_app, make_user):
        body = ApplyResponse(message="Application submitted successfully", application_id="a1")
        with patch(f"{SERVICE}.apply", new_callable=AsyncMock, return_value=body) as apply_mock:
            response = _client(build_app, make_user()).post(
                "/api/v1/applications/apply",
                json={"opportunityId": str(uuid4()), "coverLetter": "Hi", "gpa": 3.9},
            )

        assert response.status_code == 201
        assert response.json()["application_id"] == "a1"
        data = apply_mock.await_args.args[2]
        assert data.cover_letter == "Hi"

    def test_duplicate_is_400(self, build_app, make_user):
        with patch(
            f"{SERVICE}.apply",
            new_callable=AsyncMock,
            side_effect=DuplicateApplicationError(),
        ):
            response = _client(build_app, make_user()).post(
                "/api/v1/applications/apply",
                json={"opportunity_id": str(uuid4())},
            )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "DUPLICATE_APPLICATION"

    def test_missing_opportunity_id_is_422(self, build_app, make_user):
        response = _client(build_app, make_user()).post("/api/v1/applications/apply", json={})
        assert response.status_code == 422

    def test_requires_identity(self, build_app):
        response = _client(build_app).post(
            "/api/v1/applications/apply", json={"opportunity_id": str(uuid4())}
        )
        assert response.status_code == 401


class TestListEndpoints:
    def test_forbidden_listing(self, build_app, make_user):
        with patch(
            f"{SERVICE}.list_for_opportunity",
            new_callable=AsyncMock,
            side_effect=ForbiddenError("Not authorized to view applications for this opportunity"),
        ):
            response = _client(build_app, make_user(role=UserRole.MANAGER)).get(
                f"/api/v1/applications/opportunity/{uuid4()}"
            )

        assert response.status_code == 403

    def test_student_applications_wrapped(self, build_app, make_user):
        student = make_user()
        with patch(f"{SERVICE}.list_for_student", new_callable=AsyncMock, return_value=[]):
            response = _client(build_app, student).get(f"/api/v1/applications/student/{student.id}")

        assert response.status_code == 200
        assert response.json() == {"applications": []}


class TestStatusEndpoint:
    """Tests for PUT /applications/{id}/status."""

    def test_review_notes_alias(self, build_app, make_user):
        application_id = uuid4()
        body = StatusUpdateResponse(
            message="Application status updated successfully",
            application_id=str(application_id),
            new_status=ApplicationStatus.APPROVED,
        )
        with patch(
            f"{SERVICE}.update_status", new_callable=AsyncMock, return_value=body
        ) as update:
            response = _client(build_app, make_user(role=UserRole.ADMIN)).put(
                f"/api/v1/applications/{application_id}/status",
                json={"status": "approved", "reviewNotes": "Great fit"},
            )

        assert response.status_code == 200
        assert response.json()["new_status"] == "approved"
        args = update.await_args.args
        assert args[1:4] == (str(application_id), "approved", "Great fit")

    def test_terminal_transition_is_400(self, build_app, make_user):
        with patch(
            f"{SERVICE}.update_status",
            new_callable=AsyncMock,
            side_effect=InvalidStatusTransitionError("Cannot change a rejected application to approved"),
        ):
            response = _client(build_app, make_user(role=UserRole.ADMIN)).put(
                f"/api/v1/applications/{uuid4()}/status", json={"status": "approved"}
            )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_STATUS_TRANSITION"


class TestWithdrawEndpoint:
    def test_unexpected_error_is_500(self, build_app, make_user):
        with patch(f"{SERVICE}.withdraw", new_callable=AsyncMock, side_effect=RuntimeError("boom")):
            response = _client(build_app, make_user()).put(
                f"/api/v1/applications/{uuid4()}/withdraw"
            )

        assert response.status_code == 500
