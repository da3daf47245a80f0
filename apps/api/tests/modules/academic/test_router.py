"""
Router tests for /academic endpoints.
"""

from unittest.mock import AsyncMock, patch
from uuid import uuid4

from fastapi.testclient import TestClient

from trustteams.modules.academic.router import router
from trustteams.modules.opportunities.service import to_response
from trustteams.modules.users.models import UserRole


def _client(build_app, user) -> TestClient:
    return TestClient(build_app(router, "/academic", user=user))


class TestAcademicEndpoints:
    def test_students_listed_without_secrets(self, build_app, make_user):
        leader = make_user(role=UserRole.ACADEMIC_LEADER, university_id="u1")
        with patch(
            "trustteams.modules.academic.service.list_students",
            new_callable=AsyncMock,
            return_value=[make_user(university_id="u1")],
        ):
            response = _client(build_app, leader).get("/api/v1/academic/students")

        assert response.status_code == 200
        user = response.json()["users"][0]
        assert user["role"] == "student"
        assert "password_hash" not in user

    def test_student_role_forbidden(self, build_app, make_user):
        response = _client(build_app, make_user()).get("/api/v1/academic/students")
        assert response.status_code == 403

    def test_delete_message(self, build_app, make_user):
        leader = make_user(role=UserRole.ACADEMIC_LEADER, university_id="u1")
        with patch("trustteams.modules.academic.service.delete_student", new_callable=AsyncMock):
            response = _client(build_app, leader).delete(f"/api/v1/academic/students/{uuid4()}")

        assert response.status_code == 200
        assert response.json() == {"message": "Student deleted"}

    def test_post_opportunity_broadcasts(self, build_app, make_user, make_opportunity):
        leader = make_user(role=UserRole.ACADEMIC_LEADER)
        created = to_response(make_opportunity(posted_by=leader.id))
        with (
            patch(
                "trustteams.modules.opportunities.service.create_opportunity",
                new_callable=AsyncMock,
                return_value=created,
            ),
            patch(
                "trustteams.modules.academic.router.broadcast_new_opportunity",
                new_callable=AsyncMock,
            ) as broadcast,
        ):
            response = _client(build_app, leader).post(
                "/api/v1/academic/opportunities",
                json={"title": "Research Assistant", "type": "research", "description": "Lab work"},
            )

        assert response.status_code == 201
        broadcast.assert_awaited_once_with(created.id)
