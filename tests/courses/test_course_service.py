"""Tests for CourseService."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest

from learnhub.courses.models import (
    AssessmentTemplate,
    CompletionRule,
    Course,
    CourseModule,
    CourseStatus,
    DifficultyLevel,
)
from learnhub.courses.schemas import (
    CreateAssessmentTemplateRequest,
    CreateCourseRequest,
    CreateModuleRequest,
    UpdateCourseRequest,
)
from learnhub.courses.service import (
    AssessmentTemplateNotFoundError,
    CourseNotFoundError,
    CourseService,
    InvalidReorderError,
    ModuleNotFoundError,
    sort_modules,
)


class _Rows(list):
    def one(self):
        return self[0] if self else None


def _rows(*entities) -> _Rows:
    """Driver-like result set built from entity dicts."""
    return _Rows(SimpleNamespace(**e.to_dict()) for e in entities)


@pytest.fixture
def course_service(mock_session: Mock) -> CourseService:
    return CourseService(session=mock_session, keyspace="test_keyspace")


@pytest.fixture
def course() -> Course:
    return Course(course_name="Customer Service Basics", course_type="Soft skills")


class TestCourses:
    """Tests for course CRUD."""

    @pytest.mark.asyncio
    async def test_create_course_starts_as_draft(
        self, course_service: CourseService, mock_session: Mock
    ) -> None:
        creator = uuid4()
        data = CreateCourseRequest(
            course_name="  Safety Training  ",
            course_type="Technical",
            difficulty_level=DifficultyLevel.ADVANCED,
            completion_rule=CompletionRule.PASS_MINIMUM_PERCENTAGE,
            minimum_passing_percentage=80,
        )

        course = await course_service.create_course(data, creator)

        assert course.course_name == "Safety Training"
        assert course.status == CourseStatus.DRAFT.value
        assert course.difficulty_level == "Advanced"
        assert course.completion_rule == "pass_minimum_percentage"
        assert course.minimum_passing_percentage == 80
        assert course.created_by == creator
        mock_session.aexecute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_require_course_missing(self, course_service: CourseService) -> None:
        with pytest.raises(CourseNotFoundError):
            await course_service.require_course(uuid4())

    @pytest.mark.asyncio
    async def test_get_course_from_row(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        mock_session.aexecute.return_value = _rows(course)

        found = await course_service.get_course(course.id)

        assert found is not None
        assert found.id == course.id
        assert found.course_name == "Customer Service Basics"

    @pytest.mark.asyncio
    async def test_update_only_provided_fields(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        mock_session.aexecute.return_value = _rows(course)

        updated = await course_service.update_course(
            course.id,
            UpdateCourseRequest(
                status=CourseStatus.PUBLISHED,
                completion_rule=CompletionRule.PASS_MANDATORY_ONLY,
            ),
        )

        assert updated.status == "published"
        assert updated.completion_rule == "pass_mandatory_only"
        assert updated.course_name == "Customer Service Basics"
        assert updated.updated_at is not None

    @pytest.mark.asyncio
    async def test_delete_course_removes_content(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        mock_session.aexecute.return_value = _rows(course)

        await course_service.delete_course(course.id)

        statements = [c.args[0] for c in mock_session.aexecute.call_args_list[1:]]
        assert len(statements) == 3
        assert all(s.startswith("DELETE FROM") for s in statements)

    @pytest.mark.asyncio
    async def test_list_courses_filters_and_sorts(
        self, course_service: CourseService, mock_session: Mock
    ) -> None:
        now = datetime.now(UTC)
        older = Course(
            course_name="Older",
            status="published",
            created_at=now - timedelta(days=2),
        )
        newer = Course(course_name="Newer", status="published", created_at=now)
        draft = Course(course_name="Draft", created_at=now)
        mock_session.aexecute.return_value = _rows(older, draft, newer)

        courses = await course_service.list_courses(status=CourseStatus.PUBLISHED)

        assert [c.course_name for c in courses] == ["Newer", "Older"]


class TestModules:
    """Tests for module management."""

    @pytest.mark.asyncio
    async def test_create_module_appends_to_end(
        self, course_service: CourseService, course: Course
    ) -> None:
        existing = [
            CourseModule(course_id=course.id, module_name="One", module_order=1),
            CourseModule(course_id=course.id, module_name="Two", module_order=2),
        ]
        course_service.require_course = AsyncMock(return_value=course)
        course_service.get_modules = AsyncMock(return_value=existing)

        module = await course_service.create_module(
            course.id, CreateModuleRequest(module_name="Three")
        )

        assert module.module_order == 3
        assert module.content_type == "text"

    @pytest.mark.asyncio
    async def test_create_module_in_unknown_course(
        self, course_service: CourseService
    ) -> None:
        with pytest.raises(CourseNotFoundError):
            await course_service.create_module(
                uuid4(), CreateModuleRequest(module_name="Intro")
            )

    @pytest.mark.asyncio
    async def test_get_modules_sorted_by_order(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        second = CourseModule(course_id=course.id, module_name="B", module_order=2)
        first = CourseModule(course_id=course.id, module_name="A", module_order=1)
        mock_session.aexecute.return_value = _rows(second, first)

        modules = await course_service.get_modules(course.id)

        assert [m.module_name for m in modules] == ["A", "B"]

    @pytest.mark.asyncio
    async def test_delete_missing_module(self, course_service: CourseService) -> None:
        with pytest.raises(ModuleNotFoundError):
            await course_service.delete_module(uuid4(), uuid4())

    @pytest.mark.asyncio
    async def test_reorder_assigns_positions(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        a = CourseModule(course_id=course.id, module_name="A", module_order=1)
        b = CourseModule(course_id=course.id, module_name="B", module_order=2)
        course_service.get_modules = AsyncMock(return_value=[a, b])

        modules = await course_service.reorder_modules(course.id, [b.id, a.id])

        assert [m.module_name for m in modules] == ["B", "A"]
        assert b.module_order == 1
        assert a.module_order == 2
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_reorder_rejects_partial_list(
        self, course_service: CourseService, course: Course
    ) -> None:
        a = CourseModule(course_id=course.id, module_name="A", module_order=1)
        b = CourseModule(course_id=course.id, module_name="B", module_order=2)
        course_service.get_modules = AsyncMock(return_value=[a, b])

        with pytest.raises(InvalidReorderError):
            await course_service.reorder_modules(course.id, [a.id])

    def test_sort_modules_ties_keep_creation_order(self) -> None:
        course_id = uuid4()
        now = datetime.now(UTC)
        later = CourseModule(
            course_id=course_id, module_name="Later", module_order=1, created_at=now
        )
        earlier = CourseModule(
            course_id=course_id,
            module_name="Earlier",
            module_order=1,
            created_at=now - timedelta(minutes=5),
        )

        assert [m.module_name for m in sort_modules([later, earlier])] == [
            "Earlier",
            "Later",
        ]


class TestAssessmentTemplates:
    """Tests for assessment template management."""

    @pytest.mark.asyncio
    async def test_create_template_defaults(
        self, course_service: CourseService, course: Course
    ) -> None:
        course_service.require_course = AsyncMock(return_value=course)

        template = await course_service.create_assessment_template(
            course.id, CreateAssessmentTemplateRequest(title="Final quiz")
        )

        assert template.passing_score == 70
        assert template.is_mandatory is True
        assert template.course_id == course.id

    @pytest.mark.asyncio
    async def test_get_template_from_row(
        self, course_service: CourseService, mock_session: Mock, course: Course
    ) -> None:
        template = AssessmentTemplate(course_id=course.id, title="Quiz", passing_score=85)
        mock_session.aexecute.return_value = _rows(template)

        found = await course_service.get_assessment_template(course.id, template.id)

        assert found is not None
        assert found.passing_score == 85

    @pytest.mark.asyncio
    async def test_delete_missing_template(self, course_service: CourseService) -> None:
        with pytest.raises(AssessmentTemplateNotFoundError):
            await course_service.delete_assessment_template(uuid4(), uuid4())
