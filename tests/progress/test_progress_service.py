"""Tests for ProgressService.

Covers enrollment, module and assessment recording, progress aggregation
and the gated mark-complete action.
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest

from learnhub.courses.models import AssessmentTemplate, Course, CourseModule
from learnhub.courses.service import (
    AssessmentTemplateNotFoundError,
    CourseNotFoundError,
    ModuleNotFoundError,
)
from learnhub.email.schemas import SendEmailResponse
from learnhub.employees.service import EmployeeNotFoundError
from learnhub.progress.models import (
    AssessmentResult,
    Enrollment,
    EnrollmentStatus,
    ModuleProgress,
)
from learnhub.progress.schemas import RecordAssessmentRequest
from learnhub.progress.service import (
    AlreadyEnrolledError,
    CompletionNotAllowedError,
    NotEnrolledError,
    ProgressService,
)


@pytest.fixture
def course() -> Course:
    return Course(course_name="Pharmacy Onboarding")


@pytest.fixture
def employee_id() -> UUID:
    return uuid4()


@pytest.fixture
def employee(employee_id: UUID) -> SimpleNamespace:
    return SimpleNamespace(
        id=employee_id, email="ana@learnhub.test", full_name="Ana Lima"
    )


@pytest.fixture
def course_service(course: Course) -> Mock:
    """Course service returning an empty course by default."""
    service = Mock()
    service.require_course = AsyncMock(return_value=course)
    service.get_course = AsyncMock(return_value=course)
    service.get_modules = AsyncMock(return_value=[])
    service.get_module = AsyncMock(return_value=None)
    service.get_assessment_templates = AsyncMock(return_value=[])
    service.get_assessment_template = AsyncMock(return_value=None)
    return service


@pytest.fixture
def employee_service(employee: SimpleNamespace) -> Mock:
    service = Mock()
    service.require_employee = AsyncMock(return_value=employee)
    service.get_employee = AsyncMock(return_value=employee)
    return service


@pytest.fixture
def email_service() -> Mock:
    service = Mock()
    service.send_course_assigned = AsyncMock(return_value=SendEmailResponse(success=True))
    service.send_course_completed = AsyncMock(
        return_value=SendEmailResponse(success=True)
    )
    return service


@pytest.fixture
def progress_service(
    mock_session: Mock,
    course_service: Mock,
    employee_service: Mock,
    email_service: Mock,
) -> ProgressService:
    service = ProgressService(
        session=mock_session,
        keyspace="test_keyspace",
        course_service=course_service,
        employee_service=employee_service,
        email_service=email_service,
    )
    service.get_enrollment = AsyncMock(return_value=None)
    service.get_module_records = AsyncMock(return_value=[])
    service.get_assessment_results = AsyncMock(return_value=[])
    return service


def _enrollment(employee_id: UUID, course: Course, **kwargs) -> Enrollment:
    return Enrollment(employee_id=employee_id, course_id=course.id, **kwargs)


def _passed(employee_id: UUID, template: AssessmentTemplate) -> AssessmentResult:
    return AssessmentResult(
        employee_id=employee_id,
        course_id=template.course_id,
        assessment_template_id=template.id,
        percentage=Decimal("90"),
        passing_score=70,
    )


def _done(employee_id: UUID, module: CourseModule) -> ModuleProgress:
    return ModuleProgress(
        employee_id=employee_id,
        course_id=module.course_id,
        module_id=module.id,
        completed=True,
    )


class TestEnroll:
    """Tests for enroll and bulk_enroll."""

    @pytest.mark.asyncio
    async def test_enroll_creates_not_started_enrollment(
        self,
        progress_service: ProgressService,
        mock_session: Mock,
        email_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """Should dual-write the enrollment and notify the employee."""
        assigned_by = uuid4()

        enrollment = await progress_service.enroll(employee_id, course.id, assigned_by)

        assert enrollment.status == EnrollmentStatus.NOT_STARTED.value
        assert enrollment.assigned_by == assigned_by
        assert mock_session.aexecute.call_count == 2
        statements = [c.args[0] for c in mock_session.aexecute.call_args_list]
        assert "INSERT INTO test_keyspace.enrollments " in statements[0]
        assert "enrollments_by_course" in statements[1]

        email_service.send_course_assigned.assert_awaited_once()
        kwargs = email_service.send_course_assigned.call_args.kwargs
        assert kwargs["to"] == "ana@learnhub.test"
        assert kwargs["course_name"] == "Pharmacy Onboarding"
        assert kwargs["completion_rule_text"] == "Pass all assessments to complete"

    @pytest.mark.asyncio
    async def test_enroll_without_notification(
        self,
        progress_service: ProgressService,
        email_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        await progress_service.enroll(employee_id, course.id, notify=False)
        email_service.send_course_assigned.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enroll_twice_raises(
        self,
        progress_service: ProgressService,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """An existing enrollment is never overwritten."""
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)

        with pytest.raises(AlreadyEnrolledError):
            await progress_service.enroll(employee_id, course.id)

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enroll_unknown_course(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        employee_id: UUID,
    ) -> None:
        course_service.require_course.side_effect = CourseNotFoundError()

        with pytest.raises(CourseNotFoundError):
            await progress_service.enroll(employee_id, uuid4())

    @pytest.mark.asyncio
    async def test_enroll_unknown_employee(
        self,
        progress_service: ProgressService,
        employee_service: Mock,
        course: Course,
    ) -> None:
        employee_service.require_employee.side_effect = EmployeeNotFoundError()

        with pytest.raises(EmployeeNotFoundError):
            await progress_service.enroll(uuid4(), course.id)

    @pytest.mark.asyncio
    async def test_bulk_enroll_reports_each_employee(
        self,
        progress_service: ProgressService,
        employee_service: Mock,
        employee: SimpleNamespace,
        course: Course,
    ) -> None:
        """New, already enrolled and unknown employees land in separate lists."""
        new_id, enrolled_id, missing_id = uuid4(), uuid4(), uuid4()

        async def get_enrollment(employee_id, course_id):
            if employee_id == enrolled_id:
                return Enrollment(employee_id=employee_id, course_id=course_id)
            return None

        async def require_employee(employee_id):
            if employee_id == missing_id:
                raise EmployeeNotFoundError()
            return employee

        progress_service.get_enrollment = AsyncMock(side_effect=get_enrollment)
        employee_service.require_employee = AsyncMock(side_effect=require_employee)

        response = await progress_service.bulk_enroll(
            course.id, [new_id, enrolled_id, new_id, missing_id], notify=False
        )

        assert response.enrolled == [new_id]
        assert response.skipped == [enrolled_id]
        assert len(response.failed) == 1
        assert response.failed[0].employee_id == missing_id
        assert response.failed[0].error == "Employee not found"


class TestUnenroll:
    """Tests for unenroll."""

    @pytest.mark.asyncio
    async def test_unenroll_deletes_both_rows(
        self,
        progress_service: ProgressService,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)

        await progress_service.unenroll(employee_id, course.id)

        statements = [c.args[0] for c in mock_session.aexecute.call_args_list]
        assert len(statements) == 2
        assert all(s.startswith("DELETE FROM") for s in statements)

    @pytest.mark.asyncio
    async def test_unenroll_not_enrolled(
        self, progress_service: ProgressService, course: Course, employee_id: UUID
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.unenroll(employee_id, course.id)


class TestMarkModule:
    """Tests for mark_module."""

    @pytest.mark.asyncio
    async def test_first_module_starts_enrollment(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """Completing a module moves not_started to in_progress."""
        enrollment = _enrollment(employee_id, course)
        module = CourseModule(course_id=course.id, module_name="Welcome")
        progress_service.get_enrollment.return_value = enrollment
        course_service.get_module.return_value = module

        progress = await progress_service.mark_module(employee_id, course.id, module.id)

        assert progress.completed is True
        assert progress.completed_at is not None
        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        # module row + both enrollment rows
        assert mock_session.aexecute.call_count == 3

    @pytest.mark.asyncio
    async def test_in_progress_enrollment_not_rewritten(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        enrollment = _enrollment(
            employee_id, course, status=EnrollmentStatus.IN_PROGRESS.value
        )
        module = CourseModule(course_id=course.id, module_name="Welcome")
        progress_service.get_enrollment.return_value = enrollment
        course_service.get_module.return_value = module

        progress = await progress_service.mark_module(
            employee_id, course.id, module.id, completed=False
        )

        assert progress.completed is False
        assert progress.completed_at is None
        assert mock_session.aexecute.call_count == 1

    @pytest.mark.asyncio
    async def test_unknown_module(
        self,
        progress_service: ProgressService,
        course: Course,
        employee_id: UUID,
    ) -> None:
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)

        with pytest.raises(ModuleNotFoundError):
            await progress_service.mark_module(employee_id, course.id, uuid4())

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self, progress_service: ProgressService, course: Course, employee_id: UUID
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.mark_module(employee_id, course.id, uuid4())


class TestRecordAssessmentResult:
    """Tests for record_assessment_result."""

    @pytest.fixture
    def template(self, course: Course, course_service: Mock) -> AssessmentTemplate:
        template = AssessmentTemplate(course_id=course.id, title="Final", passing_score=80)
        course_service.get_assessment_template.return_value = template
        return template

    @pytest.mark.asyncio
    async def test_uses_template_passing_score(
        self,
        progress_service: ProgressService,
        template: AssessmentTemplate,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """75% fails a template that requires 80%."""
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        data = RecordAssessmentRequest(
            course_id=course.id,
            assessment_template_id=template.id,
            percentage=Decimal("75"),
        )

        result, passed = await progress_service.record_assessment_result(employee_id, data)

        assert result.passing_score == 80
        assert passed is False

    @pytest.mark.asyncio
    async def test_falls_back_to_default_passing_score(
        self,
        progress_service: ProgressService,
        template: AssessmentTemplate,
        course: Course,
        employee_id: UUID,
    ) -> None:
        template.passing_score = None
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        data = RecordAssessmentRequest(
            course_id=course.id,
            assessment_template_id=template.id,
            percentage=Decimal("75"),
        )

        result, passed = await progress_service.record_assessment_result(employee_id, data)

        assert result.passing_score == 70
        assert passed is True

    @pytest.mark.asyncio
    async def test_explicit_passing_score_wins(
        self,
        progress_service: ProgressService,
        template: AssessmentTemplate,
        course: Course,
        employee_id: UUID,
    ) -> None:
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        data = RecordAssessmentRequest(
            course_id=course.id,
            assessment_template_id=template.id,
            percentage=Decimal("60"),
            passing_score=60,
        )

        _, passed = await progress_service.record_assessment_result(employee_id, data)

        assert passed is True

    @pytest.mark.asyncio
    async def test_unknown_template(
        self, progress_service: ProgressService, course: Course, employee_id: UUID
    ) -> None:
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        data = RecordAssessmentRequest(
            course_id=course.id,
            assessment_template_id=uuid4(),
            percentage=Decimal("90"),
        )

        with pytest.raises(AssessmentTemplateNotFoundError):
            await progress_service.record_assessment_result(employee_id, data)


class TestCourseProgress:
    """Tests for get_course_progress and get_employee_overview."""

    @pytest.mark.asyncio
    async def test_mixed_progress(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """4 modules (3 done) and 2 templates (1 passed) is 67% overall."""
        modules = [
            CourseModule(course_id=course.id, module_name=f"M{i}", module_order=i)
            for i in range(1, 5)
        ]
        templates = [
            AssessmentTemplate(course_id=course.id, title=f"A{i}") for i in range(2)
        ]
        course_service.get_modules.return_value = modules
        course_service.get_assessment_templates.return_value = templates
        progress_service.get_enrollment.return_value = _enrollment(
            employee_id, course, status=EnrollmentStatus.IN_PROGRESS.value
        )
        progress_service.get_module_records.return_value = [
            _done(employee_id, m) for m in modules[:3]
        ]
        progress_service.get_assessment_results.return_value = [
            _passed(employee_id, templates[0])
        ]

        progress = await progress_service.get_course_progress(employee_id, course.id)

        assert progress.modules.completed == 3
        assert progress.modules.percentage == 75
        assert progress.assessments.completed == 1
        assert progress.assessments.percentage == 50
        assert progress.overall_progress == 67
        assert progress.can_mark_complete is False
        assert progress.course_name == "Pharmacy Onboarding"

    @pytest.mark.asyncio
    async def test_completed_course_keeps_snapshot(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """Content added after completion does not lower the shown progress."""
        course_service.get_modules.return_value = [
            CourseModule(course_id=course.id, module_name="Added later")
        ]
        progress_service.get_enrollment.return_value = _enrollment(
            employee_id,
            course,
            status=EnrollmentStatus.COMPLETED.value,
            progress_percent=100,
        )

        progress = await progress_service.get_course_progress(employee_id, course.id)

        assert progress.modules.percentage == 0
        assert progress.overall_progress == 100
        assert progress.can_mark_complete is False

    @pytest.mark.asyncio
    async def test_not_enrolled(
        self, progress_service: ProgressService, course: Course, employee_id: UUID
    ) -> None:
        with pytest.raises(NotEnrolledError):
            await progress_service.get_course_progress(employee_id, course.id)

    @pytest.mark.asyncio
    async def test_overview_skips_deleted_courses(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        completed = _enrollment(
            employee_id,
            course,
            status=EnrollmentStatus.COMPLETED.value,
            progress_percent=100,
        )
        orphan = Enrollment(employee_id=employee_id, course_id=uuid4())
        progress_service.list_employee_enrollments = AsyncMock(
            return_value=[completed, orphan]
        )
        course_service.get_course.side_effect = lambda course_id: (
            course if course_id == course.id else None
        )

        overview = await progress_service.get_employee_overview(employee_id)

        assert overview.total_courses == 1
        assert overview.completed_courses == 1
        assert overview.in_progress_courses == 0
        assert overview.average_progress == 100

    @pytest.mark.asyncio
    async def test_overview_without_enrollments(
        self, progress_service: ProgressService, employee_id: UUID
    ) -> None:
        progress_service.list_employee_enrollments = AsyncMock(return_value=[])

        overview = await progress_service.get_employee_overview(employee_id)

        assert overview.total_courses == 0
        assert overview.average_progress == 0


class TestMarkCourseComplete:
    """Tests for the gated mark-complete action."""

    @pytest.mark.asyncio
    async def test_outstanding_assessment_blocks_completion(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        templates = [AssessmentTemplate(course_id=course.id, title=t) for t in "AB"]
        course_service.get_assessment_templates.return_value = templates
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        progress_service.get_assessment_results.return_value = [
            _passed(employee_id, templates[0])
        ]

        with pytest.raises(CompletionNotAllowedError) as exc_info:
            await progress_service.mark_course_complete(employee_id, course.id)

        assert "assessments" in exc_info.value.message
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_outstanding_module_blocks_course_without_assessments(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        """With no templates, 1 of 2 modules done is not enough."""
        modules = [CourseModule(course_id=course.id, module_name=n) for n in "AB"]
        course_service.get_modules.return_value = modules
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)
        progress_service.get_module_records.return_value = [_done(employee_id, modules[0])]

        with pytest.raises(CompletionNotAllowedError) as exc_info:
            await progress_service.mark_course_complete(employee_id, course.id)

        assert "modules" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_completes_and_snapshots_progress(
        self,
        progress_service: ProgressService,
        course_service: Mock,
        email_service: Mock,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        modules = [CourseModule(course_id=course.id, module_name=n) for n in "AB"]
        course_service.get_modules.return_value = modules
        progress_service.get_enrollment.return_value = _enrollment(
            employee_id, course, status=EnrollmentStatus.IN_PROGRESS.value
        )
        progress_service.get_module_records.return_value = [
            _done(employee_id, m) for m in modules
        ]

        enrollment = await progress_service.mark_course_complete(employee_id, course.id)

        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.progress_percent == 100
        assert enrollment.completion_date is not None
        assert mock_session.aexecute.call_count == 2
        email_service.send_course_completed.assert_awaited_once()
        kwargs = email_service.send_course_completed.call_args.kwargs
        assert kwargs["progress_percent"] == 100

    @pytest.mark.asyncio
    async def test_completing_twice_is_a_no_op(
        self,
        progress_service: ProgressService,
        email_service: Mock,
        mock_session: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        existing = _enrollment(
            employee_id,
            course,
            status=EnrollmentStatus.COMPLETED.value,
            progress_percent=90,
        )
        progress_service.get_enrollment.return_value = existing

        enrollment = await progress_service.mark_course_complete(employee_id, course.id)

        assert enrollment is existing
        assert enrollment.progress_percent == 90
        mock_session.aexecute.assert_not_awaited()
        email_service.send_course_completed.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_failed_email_does_not_fail_completion(
        self,
        progress_service: ProgressService,
        email_service: Mock,
        course: Course,
        employee_id: UUID,
    ) -> None:
        email_service.send_course_completed.return_value = SendEmailResponse(
            success=False, error="quota exceeded"
        )
        progress_service.get_enrollment.return_value = _enrollment(employee_id, course)

        enrollment = await progress_service.mark_course_complete(employee_id, course.id)

        assert enrollment.status == EnrollmentStatus.COMPLETED.value
