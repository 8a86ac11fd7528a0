"""Enrollment and progress service layer.

Business logic for:
- Enrollment management (single, bulk, unenroll)
- Module completion and assessment attempts
- Progress aggregation per course and per employee
- The gated mark-complete action
"""

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.courses.models import DEFAULT_PASSING_SCORE, Course
from learnhub.courses.service import (
    AssessmentTemplateNotFoundError,
    CourseNotFoundError,
    CourseService,
    ModuleNotFoundError,
)
from learnhub.employees.service import EmployeeError
from learnhub.progress.aggregator import (
    CourseProgress,
    ProgressFormula,
    aggregate_course_progress,
    describe_completion_rule,
    is_passing_result,
    round_percentage,
)
from learnhub.progress.models import (
    AssessmentResult,
    Enrollment,
    EnrollmentStatus,
    ModuleProgress,
    can_transition,
)
from learnhub.progress.schemas import (
    BulkEnrollFailure,
    BulkEnrollResponse,
    CourseProgressResponse,
    EmployeeProgressOverview,
    RecordAssessmentRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from learnhub.email.service import EmailService
    from learnhub.employees.models import Employee
    from learnhub.employees.service import EmployeeService

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ProgressError(Exception):
    """Base progress error."""

    def __init__(self, message: str, code: str = "progress_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotEnrolledError(ProgressError):
    """Employee not enrolled in course."""

    def __init__(self, message: str = "Employee is not enrolled in this course"):
        super().__init__(message, "not_enrolled")


class AlreadyEnrolledError(ProgressError):
    """Employee already enrolled."""

    def __init__(self, message: str = "Employee is already enrolled in this course"):
        super().__init__(message, "already_enrolled")


class InvalidStatusTransitionError(ProgressError):
    def __init__(self, current: str, target: str):
        super().__init__(
            f"Cannot move enrollment from {current} to {target}",
            "invalid_status_transition",
        )


class CompletionNotAllowedError(ProgressError):
    """Mark-complete requested before the completion gate is met."""

    def __init__(
        self, message: str = "All assessments must be passed before completing the course"
    ):
        super().__init__(message, "completion_not_allowed")


# ==============================================================================
# Progress Service
# ==============================================================================


class ProgressService:
    """Service for enrollments and learning progress."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        course_service: CourseService,
        employee_service: "EmployeeService | None" = None,
        email_service: "EmailService | None" = None,
        formula: ProgressFormula | str = ProgressFormula.ITEM_COUNT,
        default_passing_score: int = DEFAULT_PASSING_SCORE,
    ):
        self.session = session
        self.keyspace = keyspace
        self.course_service = course_service
        self.employee_service = employee_service
        self.email_service = email_service
        self.formula = ProgressFormula(formula)
        self.default_passing_score = default_passing_score
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Enrollments
        self._get_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.enrollments
            WHERE employee_id = ? AND course_id = ?
        """)
        self._get_employee_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments WHERE employee_id = ?"
        )
        self._get_course_enrollments = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.enrollments_by_course WHERE course_id = ?"
        )
        self._upsert_enrollment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments
            (employee_id, course_id, status, enrolled_date, completion_date,
             progress_percent, assigned_by, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._upsert_enrollment_by_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_course
            (course_id, employee_id, status, enrolled_date, completion_date,
             progress_percent, assigned_by, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_enrollment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments
            WHERE employee_id = ? AND course_id = ?
        """)
        self._delete_enrollment_by_course = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.enrollments_by_course
            WHERE course_id = ? AND employee_id = ?
        """)

        # Module progress
        self._get_module_progress = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_progress
            WHERE employee_id = ? AND course_id = ?
        """)
        self._upsert_module_progress = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_progress
            (employee_id, course_id, module_id, completed, completed_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

        # Assessment attempts
        self._get_results = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.course_assessments
            WHERE employee_id = ? AND course_id = ?
        """)
        self._insert_result = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_assessments
            (employee_id, course_id, assessment_template_id, id, percentage,
             passing_score, status, submitted_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Enrollment Operations
    # ==========================================================================

    async def get_enrollment(
        self, employee_id: UUID, course_id: UUID
    ) -> Enrollment | None:
        result = await self.session.aexecute(
            self._get_enrollment, [employee_id, course_id]
        )
        row = result.one()
        return Enrollment.from_row(row) if row else None

    async def require_enrollment(self, employee_id: UUID, course_id: UUID) -> Enrollment:
        """Get enrollment or raise NotEnrolledError."""
        enrollment = await self.get_enrollment(employee_id, course_id)
        if not enrollment:
            raise NotEnrolledError
        return enrollment

    async def list_employee_enrollments(self, employee_id: UUID) -> list[Enrollment]:
        """All enrollments of an employee, newest first."""
        rows = await self.session.aexecute(self._get_employee_enrollments, [employee_id])
        enrollments = [Enrollment.from_row(row) for row in rows]
        enrollments.sort(key=lambda e: e.enrolled_date, reverse=True)
        return enrollments

    async def list_course_enrollments(self, course_id: UUID) -> list[Enrollment]:
        """All enrollments of a course (from the course-side lookup table)."""
        rows = await self.session.aexecute(self._get_course_enrollments, [course_id])
        return [Enrollment.from_row(row) for row in rows]

    async def _save_enrollment(self, enrollment: Enrollment) -> None:
        """Upsert enrollment in both tables (dual-write)."""
        enrollment.updated_at = datetime.now(UTC)
        values = [
            enrollment.status,
            enrollment.enrolled_date,
            enrollment.completion_date,
            enrollment.progress_percent,
            enrollment.assigned_by,
            enrollment.updated_at,
        ]
        await self.session.aexecute(
            self._upsert_enrollment,
            [enrollment.employee_id, enrollment.course_id, *values],
        )
        await self.session.aexecute(
            self._upsert_enrollment_by_course,
            [enrollment.course_id, enrollment.employee_id, *values],
        )

    async def _get_employee(self, employee_id: UUID) -> "Employee | None":
        if self.employee_service is None:
            return None
        return await self.employee_service.require_employee(employee_id)

    async def _enroll(
        self,
        course: Course,
        employee_id: UUID,
        assigned_by: UUID | None,
        notify: bool,
    ) -> Enrollment:
        employee = await self._get_employee(employee_id)
        if await self.get_enrollment(employee_id, course.id):
            raise AlreadyEnrolledError

        enrollment = Enrollment(
            employee_id=employee_id,
            course_id=course.id,
            status=EnrollmentStatus.NOT_STARTED.value,
            assigned_by=assigned_by,
        )
        await self._save_enrollment(enrollment)

        logger.info(
            "employee_enrolled",
            employee_id=str(employee_id),
            course_id=str(course.id),
            assigned_by=str(assigned_by) if assigned_by else None,
        )

        if notify and employee is not None:
            await self._notify_course_assigned(employee, course)
        return enrollment

    async def enroll(
        self,
        employee_id: UUID,
        course_id: UUID,
        assigned_by: UUID | None = None,
        notify: bool = True,
    ) -> Enrollment:
        """Enroll an employee in a course.

        Raises:
            CourseNotFoundError: If course doesn't exist
            EmployeeNotFoundError: If employee doesn't exist
            AlreadyEnrolledError: If employee already enrolled
        """
        course = await self.course_service.require_course(course_id)
        return await self._enroll(course, employee_id, assigned_by, notify)

    async def bulk_enroll(
        self,
        course_id: UUID,
        employee_ids: list[UUID],
        assigned_by: UUID | None = None,
        notify: bool = True,
    ) -> BulkEnrollResponse:
        """Enroll many employees into one course.

        Existing enrollments are skipped; other failures are reported per
        employee and do not stop the batch.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.course_service.require_course(course_id)
        response = BulkEnrollResponse(course_id=course_id)

        for employee_id in dict.fromkeys(employee_ids):
            try:
                await self._enroll(course, employee_id, assigned_by, notify)
            except AlreadyEnrolledError:
                response.skipped.append(employee_id)
            except (EmployeeError, ProgressError) as e:
                response.failed.append(
                    BulkEnrollFailure(employee_id=employee_id, error=e.message)
                )
            else:
                response.enrolled.append(employee_id)

        logger.info(
            "bulk_enrollment_completed",
            course_id=str(course_id),
            enrolled=len(response.enrolled),
            skipped=len(response.skipped),
            failed=len(response.failed),
        )
        return response

    async def unenroll(self, employee_id: UUID, course_id: UUID) -> None:
        """Remove an enrollment.

        Module progress and assessment attempts are kept, so re-enrolling
        resumes where the employee left off.

        Raises:
            NotEnrolledError: If employee not enrolled
        """
        await self.require_enrollment(employee_id, course_id)
        await self.session.aexecute(self._delete_enrollment, [employee_id, course_id])
        await self.session.aexecute(
            self._delete_enrollment_by_course, [course_id, employee_id]
        )
        logger.info(
            "employee_unenrolled", employee_id=str(employee_id), course_id=str(course_id)
        )

    def _transition(self, enrollment: Enrollment, target: EnrollmentStatus) -> None:
        if not can_transition(enrollment.status, target):
            raise InvalidStatusTransitionError(enrollment.status, target.value)
        enrollment.status = target.value

    async def _start_if_needed(self, enrollment: Enrollment) -> None:
        """First activity moves not_started to in_progress."""
        if enrollment.status != EnrollmentStatus.NOT_STARTED.value:
            return
        self._transition(enrollment, EnrollmentStatus.IN_PROGRESS)
        await self._save_enrollment(enrollment)
        logger.info(
            "enrollment_started",
            employee_id=str(enrollment.employee_id),
            course_id=str(enrollment.course_id),
        )

    # ==========================================================================
    # Module and Assessment Progress
    # ==========================================================================

    async def get_module_records(
        self, employee_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        rows = await self.session.aexecute(
            self._get_module_progress, [employee_id, course_id]
        )
        return [ModuleProgress.from_row(row) for row in rows]

    async def get_assessment_results(
        self, employee_id: UUID, course_id: UUID
    ) -> list[AssessmentResult]:
        rows = await self.session.aexecute(self._get_results, [employee_id, course_id])
        return [AssessmentResult.from_row(row) for row in rows]

    async def mark_module(
        self,
        employee_id: UUID,
        course_id: UUID,
        module_id: UUID,
        completed: bool = True,
    ) -> ModuleProgress:
        """Mark a module done or not done.

        Raises:
            NotEnrolledError: If employee not enrolled
            ModuleNotFoundError: If module doesn't belong to the course
        """
        enrollment, module = await asyncio.gather(
            self.require_enrollment(employee_id, course_id),
            self.course_service.get_module(course_id, module_id),
        )
        if module is None:
            raise ModuleNotFoundError

        now = datetime.now(UTC)
        progress = ModuleProgress(
            employee_id=employee_id,
            course_id=course_id,
            module_id=module_id,
            completed=completed,
            completed_at=now if completed else None,
            updated_at=now,
        )
        await self.session.aexecute(
            self._upsert_module_progress,
            [
                progress.employee_id,
                progress.course_id,
                progress.module_id,
                progress.completed,
                progress.completed_at,
                progress.updated_at,
            ],
        )
        await self._start_if_needed(enrollment)

        logger.info(
            "module_progress_updated",
            employee_id=str(employee_id),
            course_id=str(course_id),
            module_id=str(module_id),
            completed=completed,
        )
        return progress

    async def record_assessment_result(
        self, employee_id: UUID, data: RecordAssessmentRequest
    ) -> tuple[AssessmentResult, bool]:
        """Store one assessment attempt.

        Returns:
            The stored attempt and whether it passes

        Raises:
            NotEnrolledError: If employee not enrolled
            AssessmentTemplateNotFoundError: If template doesn't belong to the course
        """
        enrollment, template = await asyncio.gather(
            self.require_enrollment(employee_id, data.course_id),
            self.course_service.get_assessment_template(
                data.course_id, data.assessment_template_id
            ),
        )
        if template is None:
            raise AssessmentTemplateNotFoundError

        passing_score = data.passing_score
        if passing_score is None:
            passing_score = template.passing_score
        if passing_score is None:
            passing_score = self.default_passing_score

        result = AssessmentResult(
            employee_id=employee_id,
            course_id=data.course_id,
            assessment_template_id=data.assessment_template_id,
            percentage=data.percentage,
            passing_score=passing_score,
            status=data.status.value,
        )
        await self.session.aexecute(
            self._insert_result,
            [
                result.employee_id,
                result.course_id,
                result.assessment_template_id,
                result.id,
                result.percentage,
                result.passing_score,
                result.status,
                result.submitted_at,
            ],
        )
        await self._start_if_needed(enrollment)

        passed = is_passing_result(result, self.default_passing_score)
        logger.info(
            "assessment_result_recorded",
            employee_id=str(employee_id),
            course_id=str(data.course_id),
            assessment_template_id=str(data.assessment_template_id),
            percentage=str(data.percentage),
            passed=passed,
        )
        return result, passed

    # ==========================================================================
    # Aggregation
    # ==========================================================================

    async def _compute_progress(
        self, enrollment: Enrollment, course: Course
    ) -> CourseProgress:
        modules, templates, records, results = await asyncio.gather(
            self.course_service.get_modules(course.id),
            self.course_service.get_assessment_templates(course.id),
            self.get_module_records(enrollment.employee_id, course.id),
            self.get_assessment_results(enrollment.employee_id, course.id),
        )
        return aggregate_course_progress(
            course,
            modules,
            records,
            templates,
            results,
            formula=self.formula,
            default_passing_score=self.default_passing_score,
            progress_floor=enrollment.progress_percent if enrollment.is_completed else None,
        )

    async def _load(self, employee_id: UUID, course_id: UUID) -> tuple[Enrollment, Course]:
        enrollment, course = await asyncio.gather(
            self.get_enrollment(employee_id, course_id),
            self.course_service.get_course(course_id),
        )
        if enrollment is None:
            raise NotEnrolledError
        if course is None:
            raise CourseNotFoundError
        return enrollment, course

    async def get_course_progress(
        self, employee_id: UUID, course_id: UUID
    ) -> CourseProgressResponse:
        """Progress of one employee in one course.

        Raises:
            NotEnrolledError: If employee not enrolled
            CourseNotFoundError: If course doesn't exist
        """
        enrollment, course = await self._load(employee_id, course_id)
        progress = await self._compute_progress(enrollment, course)
        return CourseProgressResponse.build(enrollment, progress, course.course_name)

    async def _progress_for(
        self, enrollment: Enrollment
    ) -> CourseProgressResponse | None:
        course = await self.course_service.get_course(enrollment.course_id)
        if course is None:
            # Course deleted after enrollment; nothing to aggregate.
            return None
        progress = await self._compute_progress(enrollment, course)
        return CourseProgressResponse.build(enrollment, progress, course.course_name)

    async def get_employee_overview(self, employee_id: UUID) -> EmployeeProgressOverview:
        """Progress across every course an employee is enrolled in."""
        enrollments = await self.list_employee_enrollments(employee_id)
        computed = await asyncio.gather(*(self._progress_for(e) for e in enrollments))
        courses = [c for c in computed if c is not None]

        completed = sum(1 for c in courses if c.status == EnrollmentStatus.COMPLETED)
        in_progress = sum(1 for c in courses if c.status == EnrollmentStatus.IN_PROGRESS)
        average = round_percentage(
            sum(c.overall_progress for c in courses), 100 * len(courses)
        )
        return EmployeeProgressOverview(
            employee_id=employee_id,
            courses=courses,
            total_courses=len(courses),
            completed_courses=completed,
            in_progress_courses=in_progress,
            average_progress=average,
        )

    # ==========================================================================
    # Completion
    # ==========================================================================

    async def mark_course_complete(self, employee_id: UUID, course_id: UUID) -> Enrollment:
        """Mark the enrollment completed when the completion gate allows it.

        Completing an already completed enrollment returns it unchanged.
        Concurrent calls are last-write-wins on the enrollment row.

        Raises:
            NotEnrolledError: If employee not enrolled
            CourseNotFoundError: If course doesn't exist
            CompletionNotAllowedError: If assessments or modules are outstanding
        """
        enrollment, course = await self._load(employee_id, course_id)
        if enrollment.is_completed:
            logger.info(
                "course_already_completed",
                employee_id=str(employee_id),
                course_id=str(course_id),
            )
            return enrollment

        progress = await self._compute_progress(enrollment, course)
        if not progress.can_mark_complete:
            if progress.assessments.total > 0:
                raise CompletionNotAllowedError
            raise CompletionNotAllowedError(
                "All modules must be completed before completing the course"
            )

        self._transition(enrollment, EnrollmentStatus.COMPLETED)
        enrollment.completion_date = datetime.now(UTC)
        enrollment.progress_percent = progress.overall
        await self._save_enrollment(enrollment)

        logger.info(
            "course_marked_complete",
            employee_id=str(employee_id),
            course_id=str(course_id),
            progress_percent=progress.overall,
        )

        await self._notify_course_completed(enrollment, course)
        return enrollment

    # ==========================================================================
    # Notifications
    # ==========================================================================

    async def _notify_course_assigned(self, employee: "Employee", course: Course) -> None:
        if self.email_service is None:
            return
        result = await self.email_service.send_course_assigned(
            to=employee.email,
            employee_name=employee.full_name,
            course_id=str(course.id),
            course_name=course.course_name,
            completion_rule_text=describe_completion_rule(
                course.completion_rule, course.minimum_passing_percentage
            ),
        )
        if not result.success:
            logger.warning(
                "course_assigned_email_failed",
                employee_id=str(employee.id),
                course_id=str(course.id),
                error=result.error,
            )

    async def _notify_course_completed(
        self, enrollment: Enrollment, course: Course
    ) -> None:
        if self.email_service is None or self.employee_service is None:
            return
        employee = await self.employee_service.get_employee(enrollment.employee_id)
        if employee is None:
            return
        result = await self.email_service.send_course_completed(
            to=employee.email,
            employee_name=employee.full_name,
            course_name=course.course_name,
            completion_date=enrollment.completion_date or datetime.now(UTC),
            progress_percent=enrollment.progress_percent,
        )
        if not result.success:
            logger.warning(
                "course_completed_email_failed",
                employee_id=str(employee.id),
                course_id=str(course.id),
                error=result.error,
            )
