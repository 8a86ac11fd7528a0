"""Tests for course schemas and endpoints."""

from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from pydantic import ValidationError

from learnhub.auth.permissions import UserRole
from learnhub.courses.models import (
    AssessmentTemplate,
    CompletionRule,
    ContentType,
    Course,
    CourseModule,
    CourseStatus,
)
from learnhub.courses.schemas import (
    CreateCourseRequest,
    CreateModuleRequest,
    ReorderModulesRequest,
)


class TestCourseSchemas:
    """Tests for request validation."""

    def test_course_defaults(self) -> None:
        data = CreateCourseRequest(course_name="Onboarding", course_type="Informative")
        assert data.completion_rule is CompletionRule.PASS_ALL_ASSESSMENTS
        assert data.minimum_passing_percentage == 70

    def test_course_name_too_short(self) -> None:
        with pytest.raises(ValidationError):
            CreateCourseRequest(course_name="ab", course_type="Technical")

    def test_minimum_percentage_bounds(self) -> None:
        with pytest.raises(ValidationError):
            CreateCourseRequest(
                course_name="Onboarding",
                course_type="Technical",
                minimum_passing_percentage=101,
            )

    def test_video_module_requires_url(self) -> None:
        with pytest.raises(ValidationError, match="content_url is required"):
            CreateModuleRequest(module_name="Intro", content_type=ContentType.VIDEO)

    def test_text_module_without_url(self) -> None:
        data = CreateModuleRequest(module_name="Intro", content="Welcome aboard")
        assert data.content_type is ContentType.TEXT
        assert data.module_order is None

    def test_reorder_rejects_duplicates(self) -> None:
        module_id = uuid4()
        with pytest.raises(ValidationError):
            ReorderModulesRequest(module_ids=[module_id, module_id])


@pytest.fixture
def course_service(app) -> Mock:
    service = Mock()
    app.state.course_service = service
    return service


class TestCourseEndpoints:
    """Tests for /v1/courses."""

    def test_intern_only_sees_published(
        self, client, auth_headers, course_service
    ) -> None:
        course_service.list_courses = AsyncMock(return_value=[])

        response = client.get(
            "/v1/courses?status_filter=draft", headers=auth_headers(UserRole.INTERN)
        )

        assert response.status_code == 200
        assert response.json() == {"items": [], "total": 0}
        kwargs = course_service.list_courses.call_args.kwargs
        assert kwargs["status"] is CourseStatus.PUBLISHED

    def test_hr_filters_by_status(self, client, auth_headers, course_service) -> None:
        course_service.list_courses = AsyncMock(
            return_value=[Course(course_name="Draft course")]
        )

        response = client.get(
            "/v1/courses?status_filter=draft", headers=auth_headers(UserRole.HR)
        )

        assert response.status_code == 200
        assert response.json()["total"] == 1
        kwargs = course_service.list_courses.call_args.kwargs
        assert kwargs["status"] is CourseStatus.DRAFT

    def test_course_detail_counts_and_rule_text(
        self, client, auth_headers, course_service
    ) -> None:
        course = Course(
            course_name="Compliance",
            completion_rule=CompletionRule.PASS_MINIMUM_PERCENTAGE.value,
            minimum_passing_percentage=80,
        )
        course_service.require_course = AsyncMock(return_value=course)
        course_service.get_modules = AsyncMock(
            return_value=[CourseModule(course_id=course.id, module_name="One")]
        )
        course_service.get_assessment_templates = AsyncMock(
            return_value=[
                AssessmentTemplate(course_id=course.id, title="Quiz 1"),
                AssessmentTemplate(course_id=course.id, title="Quiz 2"),
            ]
        )

        response = client.get(
            f"/v1/courses/{course.id}", headers=auth_headers(UserRole.INTERN)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["module_count"] == 1
        assert data["assessment_count"] == 2
        assert data["completion_rule_text"] == "Pass 80% of assessments"

    def test_intern_cannot_create_course(
        self, client, auth_headers, course_service
    ) -> None:
        course_service.create_course = AsyncMock()

        response = client.post(
            "/v1/courses",
            json={"course_name": "Onboarding", "course_type": "Informative"},
            headers=auth_headers(UserRole.INTERN),
        )

        assert response.status_code == 403
        course_service.create_course.assert_not_awaited()

    def test_create_course_validation_error(
        self, client, auth_headers, course_service
    ) -> None:
        response = client.post(
            "/v1/courses",
            json={"course_name": "x", "course_type": "Informative"},
            headers=auth_headers(UserRole.HR),
        )

        assert response.status_code == 422
        data = response.json()
        assert data["message"] == "Validation error"
        assert any(d["field"].endswith("course_name") for d in data["details"])
