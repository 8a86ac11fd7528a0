"""Course catalogue service layer.

Business logic for:
- Course CRUD, including the completion rule
- Course module CRUD and reordering
- Assessment template CRUD
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from learnhub.courses.models import (
    AssessmentTemplate,
    Course,
    CourseModule,
    CourseStatus,
)
from learnhub.courses.schemas import (
    CreateAssessmentTemplateRequest,
    CreateCourseRequest,
    CreateModuleRequest,
    UpdateAssessmentTemplateRequest,
    UpdateCourseRequest,
    UpdateModuleRequest,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CourseError(Exception):
    """Base course error."""

    def __init__(self, message: str, code: str = "course_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class CourseNotFoundError(CourseError):
    def __init__(self, message: str = "Course not found"):
        super().__init__(message, "course_not_found")


class ModuleNotFoundError(CourseError):
    def __init__(self, message: str = "Module not found"):
        super().__init__(message, "module_not_found")


class AssessmentTemplateNotFoundError(CourseError):
    def __init__(self, message: str = "Assessment template not found"):
        super().__init__(message, "assessment_template_not_found")


class InvalidReorderError(CourseError):
    def __init__(
        self, message: str = "Module ids do not match the modules of this course"
    ):
        super().__init__(message, "invalid_reorder")


def sort_modules(modules: list[CourseModule]) -> list[CourseModule]:
    """Order modules for display: by module_order, then creation time."""
    return sorted(modules, key=lambda m: (m.module_order, m.created_at))


# ==============================================================================
# Course Service
# ==============================================================================


class CourseService:
    """Service for courses, their modules and assessment templates."""

    def __init__(self, session: "Session", keyspace: str):
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        # Courses
        self._get_course = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses WHERE id = ?"
        )
        self._list_courses = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.courses LIMIT ?"
        )
        self._upsert_course = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.courses
            (id, course_name, course_description, course_type, difficulty_level,
             target_role, status, completion_rule, minimum_passing_percentage,
             created_by, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_course = self.session.prepare(
            f"DELETE FROM {self.keyspace}.courses WHERE id = ?"
        )

        # Modules
        self._get_modules = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_modules WHERE course_id = ?"
        )
        self._get_module = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.course_modules WHERE course_id = ? AND id = ?"
        )
        self._upsert_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.course_modules
            (course_id, id, module_name, module_description, module_order,
             content_type, content_url, content, estimated_duration_minutes,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._set_module_order = self.session.prepare(f"""
            UPDATE {self.keyspace}.course_modules
            SET module_order = ?, updated_at = ?
            WHERE course_id = ? AND id = ?
        """)
        self._delete_module = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_modules WHERE course_id = ? AND id = ?"
        )
        self._delete_all_modules = self.session.prepare(
            f"DELETE FROM {self.keyspace}.course_modules WHERE course_id = ?"
        )

        # Assessment templates
        self._get_templates = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.assessment_templates WHERE course_id = ?"
        )
        self._get_template = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.assessment_templates
            WHERE course_id = ? AND id = ?
        """)
        self._upsert_template = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.assessment_templates
            (course_id, id, title, description, assessment_type, passing_score,
             is_mandatory, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._delete_template = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.assessment_templates
            WHERE course_id = ? AND id = ?
        """)
        self._delete_all_templates = self.session.prepare(
            f"DELETE FROM {self.keyspace}.assessment_templates WHERE course_id = ?"
        )

    # --------------------------------------------------------------------------
    # Courses
    # --------------------------------------------------------------------------

    async def _save_course(self, course: Course) -> None:
        await self.session.aexecute(
            self._upsert_course,
            [
                course.id,
                course.course_name,
                course.course_description,
                course.course_type,
                course.difficulty_level,
                course.target_role,
                course.status,
                course.completion_rule,
                course.minimum_passing_percentage,
                course.created_by,
                course.created_at,
                course.updated_at,
            ],
        )

    async def create_course(self, data: CreateCourseRequest, created_by: UUID) -> Course:
        course = Course(
            course_name=data.course_name,
            course_description=data.course_description,
            course_type=data.course_type,
            difficulty_level=data.difficulty_level.value,
            target_role=data.target_role,
            status=CourseStatus.DRAFT.value,
            completion_rule=data.completion_rule.value,
            minimum_passing_percentage=data.minimum_passing_percentage,
            created_by=created_by,
        )
        await self._save_course(course)

        logger.info(
            "course_created",
            course_id=str(course.id),
            completion_rule=course.completion_rule,
            created_by=str(created_by),
        )
        return course

    async def get_course(self, course_id: UUID) -> Course | None:
        result = await self.session.aexecute(self._get_course, [course_id])
        row = result.one()
        return Course.from_row(row) if row else None

    async def require_course(self, course_id: UUID) -> Course:
        """Get course or raise CourseNotFoundError."""
        course = await self.get_course(course_id)
        if not course:
            raise CourseNotFoundError
        return course

    async def update_course(self, course_id: UUID, data: UpdateCourseRequest) -> Course:
        """Update course fields that were provided.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        course = await self.require_course(course_id)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(course, field, getattr(value, "value", value))
        course.course_name = course.course_name.strip()
        course.updated_at = datetime.now(UTC)

        await self._save_course(course)
        logger.info(
            "course_updated", course_id=str(course_id), fields=sorted(changes)
        )
        return course

    async def delete_course(self, course_id: UUID) -> None:
        """Delete a course with its modules and templates.

        Enrollments and progress rows are kept for reporting.
        """
        await self.require_course(course_id)
        await self.session.aexecute(self._delete_all_modules, [course_id])
        await self.session.aexecute(self._delete_all_templates, [course_id])
        await self.session.aexecute(self._delete_course, [course_id])
        logger.info("course_deleted", course_id=str(course_id))

    async def list_courses(
        self,
        status: CourseStatus | None = None,
        limit: int = 50,
    ) -> list[Course]:
        """List courses, newest first, optionally filtered by status."""
        # Full scan with a limit; the catalogue is small.
        rows = await self.session.aexecute(self._list_courses, [limit * 4])
        courses = [Course.from_row(row) for row in rows]
        if status is not None:
            courses = [c for c in courses if c.status == status.value]
        courses.sort(key=lambda c: c.created_at, reverse=True)
        return courses[:limit]

    # --------------------------------------------------------------------------
    # Modules
    # --------------------------------------------------------------------------

    async def _save_module(self, module: CourseModule) -> None:
        await self.session.aexecute(
            self._upsert_module,
            [
                module.course_id,
                module.id,
                module.module_name,
                module.module_description,
                module.module_order,
                module.content_type,
                module.content_url,
                module.content,
                module.estimated_duration_minutes,
                module.created_at,
                module.updated_at,
            ],
        )

    async def get_modules(self, course_id: UUID) -> list[CourseModule]:
        """All modules of a course, ordered by module_order."""
        rows = await self.session.aexecute(self._get_modules, [course_id])
        return sort_modules([CourseModule.from_row(row) for row in rows])

    async def get_module(self, course_id: UUID, module_id: UUID) -> CourseModule | None:
        result = await self.session.aexecute(self._get_module, [course_id, module_id])
        row = result.one()
        return CourseModule.from_row(row) if row else None

    async def create_module(
        self, course_id: UUID, data: CreateModuleRequest
    ) -> CourseModule:
        """Add a module to a course.

        Raises:
            CourseNotFoundError: If course doesn't exist
        """
        await self.require_course(course_id)

        order = data.module_order
        if order is None:
            existing = await self.get_modules(course_id)
            order = max((m.module_order for m in existing), default=0) + 1

        module = CourseModule(
            course_id=course_id,
            module_name=data.module_name,
            module_description=data.module_description,
            module_order=order,
            content_type=data.content_type.value,
            content_url=data.content_url,
            content=data.content,
            estimated_duration_minutes=data.estimated_duration_minutes,
        )
        await self._save_module(module)

        logger.info(
            "module_created",
            course_id=str(course_id),
            module_id=str(module.id),
            module_order=order,
        )
        return module

    async def update_module(
        self, course_id: UUID, module_id: UUID, data: UpdateModuleRequest
    ) -> CourseModule:
        module = await self.get_module(course_id, module_id)
        if not module:
            raise ModuleNotFoundError

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(module, field, getattr(value, "value", value))
        module.module_name = module.module_name.strip()
        module.updated_at = datetime.now(UTC)

        await self._save_module(module)
        return module

    async def delete_module(self, course_id: UUID, module_id: UUID) -> None:
        if not await self.get_module(course_id, module_id):
            raise ModuleNotFoundError
        await self.session.aexecute(self._delete_module, [course_id, module_id])
        logger.info("module_deleted", course_id=str(course_id), module_id=str(module_id))

    async def reorder_modules(
        self, course_id: UUID, module_ids: list[UUID]
    ) -> list[CourseModule]:
        """Assign module_order 1..n following ``module_ids``.

        Raises:
            InvalidReorderError: If the ids are not exactly the course's modules
        """
        modules = await self.get_modules(course_id)
        by_id = {m.id: m for m in modules}
        if set(module_ids) != set(by_id):
            raise InvalidReorderError

        now = datetime.now(UTC)
        for order, module_id in enumerate(module_ids, start=1):
            module = by_id[module_id]
            if module.module_order != order:
                module.module_order = order
                module.updated_at = now
                await self.session.aexecute(
                    self._set_module_order, [order, now, course_id, module_id]
                )

        logger.info("modules_reordered", course_id=str(course_id), count=len(module_ids))
        return sort_modules(list(by_id.values()))

    # --------------------------------------------------------------------------
    # Assessment templates
    # --------------------------------------------------------------------------

    async def _save_template(self, template: AssessmentTemplate) -> None:
        await self.session.aexecute(
            self._upsert_template,
            [
                template.course_id,
                template.id,
                template.title,
                template.description,
                template.assessment_type,
                template.passing_score,
                template.is_mandatory,
                template.created_at,
                template.updated_at,
            ],
        )

    async def get_assessment_templates(self, course_id: UUID) -> list[AssessmentTemplate]:
        rows = await self.session.aexecute(self._get_templates, [course_id])
        templates = [AssessmentTemplate.from_row(row) for row in rows]
        return sorted(templates, key=lambda t: t.created_at)

    async def get_assessment_template(
        self, course_id: UUID, template_id: UUID
    ) -> AssessmentTemplate | None:
        result = await self.session.aexecute(self._get_template, [course_id, template_id])
        row = result.one()
        return AssessmentTemplate.from_row(row) if row else None

    async def create_assessment_template(
        self, course_id: UUID, data: CreateAssessmentTemplateRequest
    ) -> AssessmentTemplate:
        await self.require_course(course_id)

        template = AssessmentTemplate(
            course_id=course_id,
            title=data.title,
            description=data.description,
            assessment_type=data.assessment_type,
            passing_score=data.passing_score,
            is_mandatory=data.is_mandatory,
        )
        await self._save_template(template)

        logger.info(
            "assessment_template_created",
            course_id=str(course_id),
            template_id=str(template.id),
            passing_score=template.passing_score,
        )
        return template

    async def update_assessment_template(
        self,
        course_id: UUID,
        template_id: UUID,
        data: UpdateAssessmentTemplateRequest,
    ) -> AssessmentTemplate:
        template = await self.get_assessment_template(course_id, template_id)
        if not template:
            raise AssessmentTemplateNotFoundError

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(template, field, value)
        template.title = template.title.strip()
        template.updated_at = datetime.now(UTC)

        await self._save_template(template)
        return template

    async def delete_assessment_template(self, course_id: UUID, template_id: UUID) -> None:
        if not await self.get_assessment_template(course_id, template_id):
            raise AssessmentTemplateNotFoundError
        await self.session.aexecute(self._delete_template, [course_id, template_id])
        logger.info(
            "assessment_template_deleted",
            course_id=str(course_id),
            template_id=str(template_id),
        )
