"""Tests for the enrollment and progress endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.auth.permissions import UserRole
from learnhub.courses.service import CourseNotFoundError
from learnhub.progress.aggregator import CourseProgress, ProgressCounts
from learnhub.progress.models import Enrollment, EnrollmentStatus
from learnhub.progress.schemas import CourseProgressResponse
from learnhub.progress.service import (
    AlreadyEnrolledError,
    CompletionNotAllowedError,
    NotEnrolledError,
)


@pytest.fixture
def progress_service(app) -> Mock:
    service = Mock()
    app.state.progress_service = service
    return service


def _progress_response(employee_id, course_id) -> CourseProgressResponse:
    progress = CourseProgress(
        course_id=course_id,
        modules=ProgressCounts(3, 4, 75),
        assessments=ProgressCounts(1, 2, 50),
        overall=67,
        can_mark_complete=False,
        completion_rule="pass_all_assessments",
        completion_rule_text="Pass all assessments to complete",
    )
    enrollment = Enrollment(
        employee_id=employee_id,
        course_id=course_id,
        status=EnrollmentStatus.IN_PROGRESS.value,
    )
    return CourseProgressResponse.build(enrollment, progress, "Onboarding")


class TestEnrollEndpoint:
    """Tests for POST /v1/enrollments."""

    def test_hr_can_enroll(self, client, auth_headers, progress_service) -> None:
        employee_id, course_id = uuid4(), uuid4()
        progress_service.enroll = AsyncMock(
            return_value=Enrollment(employee_id=employee_id, course_id=course_id)
        )

        response = client.post(
            "/v1/enrollments",
            json={"employee_id": str(employee_id), "course_id": str(course_id)},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "not_started"
        assert data["employee_id"] == str(employee_id)

    def test_intern_cannot_enroll(self, client, auth_headers, progress_service) -> None:
        progress_service.enroll = AsyncMock()

        response = client.post(
            "/v1/enrollments",
            json={"employee_id": str(uuid4()), "course_id": str(uuid4())},
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 403
        progress_service.enroll.assert_not_awaited()

    def test_already_enrolled_is_conflict(
        self, client, auth_headers, progress_service
    ) -> None:
        progress_service.enroll = AsyncMock(side_effect=AlreadyEnrolledError())

        response = client.post(
            "/v1/enrollments",
            json={"employee_id": str(uuid4()), "course_id": str(uuid4())},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 409
        assert response.json()["message"] == "Employee is already enrolled in this course"

    def test_unknown_course_is_not_found(
        self, client, auth_headers, progress_service
    ) -> None:
        progress_service.enroll = AsyncMock(side_effect=CourseNotFoundError())

        response = client.post(
            "/v1/enrollments",
            json={"employee_id": str(uuid4()), "course_id": str(uuid4())},
            headers=auth_headers(UserRole.ADMIN),
        )

        assert response.status_code == 404

    def test_service_unavailable_without_database(self, client, auth_headers) -> None:
        response = client.post(
            "/v1/enrollments",
            json={"employee_id": str(uuid4()), "course_id": str(uuid4())},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 503


class TestProgressVisibility:
    """Employees see their own progress; managers see everyone's."""

    def test_own_progress(self, client, auth_headers, progress_service) -> None:
        employee_id, course_id = uuid4(), uuid4()
        progress_service.get_course_progress = AsyncMock(
            return_value=_progress_response(employee_id, course_id)
        )

        response = client.get(
            f"/v1/progress/{employee_id}/courses/{course_id}",
            headers=auth_headers(UserRole.INTERN, employee_id),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["overall_progress"] == 67
        assert data["modules"] == {"completed": 3, "total": 4, "percentage": 75}
        assert data["assessments"]["percentage"] == 50
        assert data["can_mark_complete"] is False

    def test_intern_cannot_view_others(
        self, client, auth_headers, progress_service
    ) -> None:
        progress_service.get_course_progress = AsyncMock()

        response = client.get(
            f"/v1/progress/{uuid4()}/courses/{uuid4()}",
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 403
        progress_service.get_course_progress.assert_not_awaited()

    def test_manager_can_view_others(
        self, client, auth_headers, progress_service
    ) -> None:
        employee_id, course_id = uuid4(), uuid4()
        progress_service.get_course_progress = AsyncMock(
            return_value=_progress_response(employee_id, course_id)
        )

        response = client.get(
            f"/v1/progress/{employee_id}/courses/{course_id}",
            headers=auth_headers(UserRole.MANAGER),
        )

        assert response.status_code == 200

    def test_not_enrolled_is_not_found(
        self, client, auth_headers, progress_service
    ) -> None:
        employee_id = uuid4()
        progress_service.get_course_progress = AsyncMock(side_effect=NotEnrolledError())

        response = client.get(
            f"/v1/progress/{employee_id}/courses/{uuid4()}",
            headers=auth_headers(UserRole.INTERN, employee_id),
        )

        assert response.status_code == 404

    def test_enrollments_of_other_employee_forbidden(
        self, client, auth_headers, progress_service
    ) -> None:
        progress_service.list_employee_enrollments = AsyncMock(return_value=[])

        response = client.get(
            f"/v1/enrollments/employee/{uuid4()}",
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 403


class TestMarkCourseCompleteEndpoint:
    """Tests for POST /v1/progress/courses/{course_id}/complete."""

    def test_completion_blocked(self, client, auth_headers, progress_service) -> None:
        progress_service.mark_course_complete = AsyncMock(
            side_effect=CompletionNotAllowedError()
        )

        response = client.post(
            f"/v1/progress/courses/{uuid4()}/complete",
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 409
        assert "assessments" in response.json()["message"]

    def test_completion_uses_current_user(
        self, client, auth_headers, progress_service
    ) -> None:
        employee_id, course_id = uuid4(), uuid4()
        progress_service.mark_course_complete = AsyncMock(
            return_value=Enrollment(
                employee_id=employee_id,
                course_id=course_id,
                status=EnrollmentStatus.COMPLETED.value,
                progress_percent=100,
            )
        )

        response = client.post(
            f"/v1/progress/courses/{course_id}/complete",
            headers=auth_headers(UserRole.INTERN, employee_id),
        )

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        progress_service.mark_course_complete.assert_awaited_once_with(
            employee_id, course_id
        )
